"""Build the admin form model for a discovered resource."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .config import GeneratorConfig
from .descriptors import Direction, Kind, TypeDescriptor
from .discovery import ResourceModel
from .form_emitter import ControlKind, FormControl, build_control, initial_value, validators_for
from .naming import title_case
from .resolver import ResolutionContext

logger = logging.getLogger(__name__)

# Related records are chosen by id and shown by name
RELATION_VALUE_FIELD = "id"
RELATION_DISPLAY_FIELD = "name"


@dataclass(frozen=True)
class DisplayField:
    name: str
    label: str
    kind: str
    read_only: bool = False


@dataclass
class FormArrayRow:
    """One repeatable row of a form array, built by its own factory."""

    path: str
    control: FormControl
    # Row-relative paths of polymorphic controls
    polymorphic: list[str] = field(default_factory=list)


@dataclass
class FormModel:
    resource: str
    class_name: str
    model_name: str
    is_editable: bool
    controls: list[FormControl] = field(default_factory=list)
    display_fields: list[DisplayField] = field(default_factory=list)
    has_file_inputs: bool = False
    # Dotted paths of polymorphic controls needing selection wiring
    polymorphic: list[str] = field(default_factory=list)
    # Every form array, nested ones included, outermost first
    form_arrays: list[FormArrayRow] = field(default_factory=list)

    @property
    def has_polymorphic(self) -> bool:
        return bool(self.polymorphic) or any(row.polymorphic for row in self.form_arrays)


def _relation_targets(resources: list[ResourceModel], current: ResourceModel) -> dict[str, ResourceModel]:
    """Model names of other listable resources, for relationship selects."""
    targets: dict[str, ResourceModel] = {}
    for resource in resources:
        if resource is current or not resource.has_role("list"):
            continue
        targets.setdefault(resource.model_name, resource)
        if resource.create_model_name:
            targets.setdefault(resource.create_model_name, resource)
    return targets


def _relation_control(name: str, descriptor: TypeDescriptor, target: ResourceModel) -> FormControl:
    return FormControl(
        name=name,
        kind=ControlKind.RELATION,
        label=title_case(name),
        required=descriptor.required,
        validators=validators_for(descriptor, descriptor.required),
        initial=initial_value(descriptor, descriptor.required),
        options=(RELATION_VALUE_FIELD, RELATION_DISPLAY_FIELD),
        description=descriptor.description,
        type_ref=target.name,
    )


def _walk(controls: list[FormControl] | tuple[FormControl, ...], prefix: str = ""):
    for control in controls:
        path = f"{prefix}{control.name}"
        yield path, control
        if control.kind != ControlKind.FORM_ARRAY:
            yield from _walk(control.children, f"{path}.")


def _collect(
    model: FormModel, controls: list[FormControl] | tuple[FormControl, ...], prefix: str = ""
) -> list[str]:
    """Register file inputs and array rows under controls; return their polymorphic paths.

    Paths are relative to controls. Each array row is registered with its
    own row-relative polymorphic paths.
    """
    polymorphic = []
    for path, control in _walk(controls):
        if control.kind == ControlKind.FILE:
            model.has_file_inputs = True
        elif control.kind == ControlKind.POLYMORPHIC:
            polymorphic.append(path)
        elif control.kind == ControlKind.FORM_ARRAY:
            row = FormArrayRow(f"{prefix}{path}", control)
            model.form_arrays.append(row)
            row.polymorphic.extend(_collect(model, control.children, f"{row.path}."))
    return polymorphic


def build_form(
    resource: ResourceModel,
    resources: list[ResourceModel],
    ctx: ResolutionContext,
    config: GeneratorConfig,
) -> FormModel:
    """Controls for the resource's writable properties plus its display fields.

    Read-only resources get display fields only. References to another
    listable resource's model become relationship selects.
    """
    model = FormModel(
        resource=resource.name,
        class_name=resource.class_name,
        model_name=resource.model_name,
        is_editable=resource.is_editable,
        display_fields=[
            DisplayField(name, title_case(name), prop.kind.value, prop.read_only)
            for name, prop in resource.view_properties
        ],
    )
    if not resource.is_editable:
        return model

    targets = _relation_targets(resources, resource)
    expanding = frozenset({resource.create_model_name}) if resource.create_model_name else frozenset()
    for name, prop in resource.form_properties:
        if prop.kind == Kind.REFERENCE and prop.ref in targets:
            model.controls.append(_relation_control(name, prop, targets[prop.ref]))
        else:
            model.controls.append(build_control(name, prop, ctx, config, Direction.WRITE, expanding))

    model.polymorphic = _collect(model, model.controls)
    logger.debug("Form for %s: %d controls", resource.name, len(model.controls))
    return model
