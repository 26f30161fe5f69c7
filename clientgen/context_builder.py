"""Build the template context for one generation run.

Resolves the schema graph once, then assembles model declarations,
validator files, resources, forms and the auth shape into the dict the
templates render from.
"""

from __future__ import annotations

import logging
from typing import Any

from .auth import detect_auth_shape
from .config import GeneratorConfig
from .descriptors import Direction
from .discovery import ResourceModel, discover_resources
from .form_tree import FormModel, build_form
from .loader import SchemaStore
from .operations import check_unique_method_names, extract_operations
from .resolver import ResolutionContext, resolve_definitions
from .type_emitter import build_declarations
from .validator_emitter import build_named_schemas, build_validator_files

logger = logging.getLogger(__name__)


def resource_manifest(resource: ResourceModel, form: FormModel | None) -> dict[str, Any]:
    """JSON-ready description of one resource for admin/resources.json."""
    return {
        "name": resource.name,
        "className": resource.class_name,
        "pluralName": resource.plural_name,
        "titleName": resource.title_name,
        "serviceName": resource.service_name,
        "tag": resource.tag,
        "modelName": resource.model_name,
        "createModelName": resource.create_model_name,
        "isEditable": resource.is_editable,
        "operations": {
            role: {
                "methodName": op.method_name,
                "method": op.method.upper(),
                "path": op.path,
                "idParamName": op.id_param_name,
            }
            for role, op in resource.operations.items()
        },
        "actions": [
            {
                "label": a.label,
                "methodName": a.method_name,
                "method": a.method.upper(),
                "path": a.path,
                "level": a.level,
                "idParamName": a.id_param_name,
            }
            for a in resource.actions
        ],
        "filters": [
            {"name": f.name, "label": f.label, "inputType": f.input_type, "options": list(f.options)}
            for f in resource.filter_parameters
        ],
        "pagination": resource.pagination,
        "listColumns": resource.list_columns,
        "formFields": [c.name for c in form.controls] if form else [],
        "hasFileInputs": form.has_file_inputs if form else False,
    }


def build_context(store: SchemaStore, config: GeneratorConfig) -> dict[str, Any]:
    """Run one full generation pass and return the template context."""
    ctx = ResolutionContext(store, config)
    resolve_definitions(ctx, Direction.READ)

    operations = extract_operations(store.get_paths(), store)
    check_unique_method_names(operations)

    validator_files = [f for f in build_validator_files(operations, ctx) if f.statements]

    resources: list[ResourceModel] = []
    forms: list[FormModel] = []
    if config.admin.enabled:
        resources = discover_resources(operations, ctx, config)
        forms = [build_form(r, resources, ctx, config) for r in resources]

    # Every named type is registered by now; declare them last so the
    # emitted set is closed over all references.
    declarations = build_declarations(ctx)
    schemas = build_named_schemas(ctx)

    auth = detect_auth_shape(store.get_security_schemes())
    logger.info(
        "Resolved %d models, %d operations, %d resources",
        len(declarations), len(operations), len(resources),
    )

    return {
        "api_version": store.info_version(),
        "declarations": declarations,
        "schemas": schemas,
        "validator_files": validator_files,
        "resources": resources,
        "forms": forms,
        "manifest": [resource_manifest(r, f) for r, f in zip(resources, forms)],
        "auth": auth,
        "warnings": list(ctx.warnings),
        "model_count": len(declarations),
        "operation_count": len(operations),
        "resource_count": len(resources),
    }
