"""Render templates and write generated output.

Takes the context from context_builder and writes:
  models/index.ts
  validators/schemas.ts, validators/<group>.validator.ts
  admin/<plural>/<name>-form.controls.ts
  admin/helpers/custom-validators.ts
  admin/resources.json
"""

from __future__ import annotations

import dataclasses
import json
from pathlib import Path
from typing import Any

import jinja2

from .form_emitter import render_control, render_group
from .naming import pascal_case
from .type_emitter import literal

TEMPLATE_DIR = Path(__file__).parent / "templates"


def _environment() -> jinja2.Environment:
    env = jinja2.Environment(
        loader=jinja2.FileSystemLoader(str(TEMPLATE_DIR)),
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["render_control"] = render_control
    env.filters["render_group"] = render_group
    env.filters["pascal"] = lambda path: pascal_case(path.replace(".", "_"))
    env.filters["ts_literal"] = literal
    env.filters["json"] = lambda value: json.dumps(value, default=str)
    return env


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def _auth_json(context: dict[str, Any]) -> dict[str, Any] | None:
    auth = context.get("auth")
    return dataclasses.asdict(auth) if auth is not None else None


def generate(context: dict[str, Any], output_dir: str | Path) -> list[Path]:
    """Render every artifact under output_dir; returns the written paths."""
    env = _environment()
    out = Path(output_dir)
    written: list[Path] = []

    def emit(relative: str, template: str, **values: Any) -> None:
        path = out / relative
        _write(path, env.get_template(template).render(**context, **values))
        written.append(path)

    emit("models/index.ts", "models.ts.j2")

    if context["validator_files"]:
        emit("validators/schemas.ts", "schemas.ts.j2")
        for unit in context["validator_files"]:
            emit(f"validators/{unit.file_name}", "validators.ts.j2", unit=unit)

    if context["resources"]:
        for resource, form in zip(context["resources"], context["forms"]):
            emit(
                f"admin/{resource.folder_name}/{resource.file_name}-form.controls.ts",
                "form_controls.ts.j2",
                resource=resource,
                form=form,
            )
        emit("admin/helpers/custom-validators.ts", "custom_validators.ts.j2")

        manifest = {
            "apiVersion": context["api_version"],
            "auth": _auth_json(context),
            "resources": context["manifest"],
        }
        path = out / "admin" / "resources.json"
        _write(path, json.dumps(manifest, indent=2, default=str) + "\n")
        written.append(path)

    print(
        f"Generated {out} ({context['model_count']} models,"
        f" {len(context['validator_files'])} validator files,"
        f" {context['resource_count']} resources)"
    )
    return written
