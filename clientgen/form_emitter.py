"""Decide UI form controls for descriptors and render them as Angular code.

build_control() is pure decision logic: it returns a FormControl tree
(kind, validators, initial value, children). render_control() turns that
tree into reactive-forms constructor text.

Control kind, first match wins:
  enum (<= 4 values)           radio-group
  enum (> 4 values)            select
  boolean                      checkbox / slide-toggle
  number, min and max          slider
  number                       number
  string date / date-time      datepicker
  string password / textarea   password / textarea
  binary                       file
  array of string enums        button-toggle-group
  array of strings             chip-list
  array of objects             form-array
  object                       group
  oneOf / anyOf named objects  polymorphic
  anything else                text
"""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .config import GeneratorConfig
from .descriptors import Direction, Kind, TypeDescriptor
from .naming import quote_property, title_case
from .resolver import ResolutionContext, flatten_object, lookup

MAX_RADIO_OPTIONS = 4

TYPE_SELECTOR = "typeSelector"

_DATE_FORMATS = ("date", "date-time")
_ENUM_KINDS = (Kind.LITERAL_UNION, Kind.ENUM)


class ControlKind(str, Enum):
    RADIO_GROUP = "radio-group"
    SELECT = "select"
    CHECKBOX = "checkbox"
    SLIDE_TOGGLE = "slide-toggle"
    SLIDER = "slider"
    NUMBER = "number"
    DATEPICKER = "datepicker"
    PASSWORD = "password"
    TEXTAREA = "textarea"
    FILE = "file"
    BUTTON_TOGGLE_GROUP = "button-toggle-group"
    CHIP_LIST = "chip-list"
    FORM_ARRAY = "form-array"
    GROUP = "group"
    POLYMORPHIC = "polymorphic"
    RELATION = "relation"
    TEXT = "text"


# Controls rendered as FormGroup rather than FormControl
GROUP_KINDS = frozenset({ControlKind.GROUP, ControlKind.POLYMORPHIC})


@dataclass(frozen=True)
class FormValidator:
    """builtin validators come from Validators, the rest from CustomValidators."""

    name: str
    argument: Any = None
    builtin: bool = True


@dataclass(frozen=True)
class FormControl:
    name: str
    kind: ControlKind
    label: str
    required: bool = False
    validators: tuple[FormValidator, ...] = ()
    initial: Any = None
    options: tuple[Any, ...] = ()
    minimum: float | None = None
    maximum: float | None = None
    description: str | None = None
    disabled: bool = False
    input_type: str = "text"
    children: tuple[FormControl, ...] = ()
    # Named schema behind a group or option, or the related resource
    type_ref: str | None = None

    def child(self, name: str) -> FormControl | None:
        for control in self.children:
            if control.name == name:
                return control
        return None


def initial_value(descriptor: TypeDescriptor, required: bool) -> Any:
    """Default, else null when optional, else an empty value of the type."""
    if descriptor.has_default:
        return descriptor.default
    if not required:
        return None
    if descriptor.kind == Kind.BOOLEAN:
        return False
    if descriptor.kind in (Kind.NUMBER, Kind.INTEGER):
        return 0
    if descriptor.kind in (Kind.ARRAY, Kind.TUPLE):
        return []
    if descriptor.kind in (Kind.STRING, Kind.LITERAL_UNION):
        return ""
    return None


def validators_for(descriptor: TypeDescriptor, required: bool) -> tuple[FormValidator, ...]:
    """Validators mirroring the schema constraints.

    Inclusive bounds and lengths use built-in validators; exclusive bounds,
    multiples and uniqueness have no built-in equivalent.
    """
    c = descriptor.constraints
    found: list[FormValidator] = []
    if required:
        found.append(FormValidator("required"))
    if descriptor.kind == Kind.STRING:
        if descriptor.format == "email":
            found.append(FormValidator("email"))
        if c.min_length is not None:
            found.append(FormValidator("minLength", c.min_length))
        if c.max_length is not None:
            found.append(FormValidator("maxLength", c.max_length))
        if c.pattern:
            found.append(FormValidator("pattern", c.pattern))
    elif descriptor.kind in (Kind.NUMBER, Kind.INTEGER):
        if c.minimum is not None:
            found.append(FormValidator("min", c.minimum))
        if c.maximum is not None:
            found.append(FormValidator("max", c.maximum))
        if c.exclusive_minimum is not None:
            found.append(FormValidator("exclusiveMin", c.exclusive_minimum, builtin=False))
        if c.exclusive_maximum is not None:
            found.append(FormValidator("exclusiveMax", c.exclusive_maximum, builtin=False))
        if c.multiple_of is not None:
            found.append(FormValidator("multipleOf", c.multiple_of, builtin=False))
    elif descriptor.kind == Kind.ARRAY:
        if c.min_items is not None:
            found.append(FormValidator("minLength", c.min_items))
        if c.max_items is not None:
            found.append(FormValidator("maxLength", c.max_items))
        if c.unique_items:
            found.append(FormValidator("uniqueItems", builtin=False))
    return tuple(found)


def _follow(
    descriptor: TypeDescriptor, ctx: ResolutionContext, direction: Direction
) -> TypeDescriptor | None:
    """Target of a reference, carrying the referencing site's modifiers."""
    target = lookup(descriptor, ctx, direction)
    if target is None or target is descriptor:
        return target
    return dataclasses.replace(
        target,
        required=descriptor.required,
        nullable=descriptor.nullable or target.nullable,
        default=descriptor.default if descriptor.has_default else target.default,
        description=descriptor.description or target.description,
    )


def _is_object_like(descriptor: TypeDescriptor, ctx: ResolutionContext, direction: Direction) -> bool:
    return flatten_object(descriptor, ctx, direction) is not None


def _leaf(name: str, kind: ControlKind, descriptor: TypeDescriptor, **extra: Any) -> FormControl:
    return FormControl(
        name=name,
        kind=kind,
        label=title_case(name),
        required=descriptor.required,
        validators=validators_for(descriptor, descriptor.required),
        initial=initial_value(descriptor, descriptor.required),
        description=descriptor.description,
        **extra,
    )


def build_control(
    name: str,
    descriptor: TypeDescriptor,
    ctx: ResolutionContext,
    config: GeneratorConfig,
    direction: Direction = Direction.WRITE,
    expanding: frozenset[str] = frozenset(),
) -> FormControl:
    """Decide the control for one property; see the module table."""
    type_ref = None
    if descriptor.kind == Kind.REFERENCE:
        if descriptor.ref in expanding:
            ctx.warn(f"Recursive reference to {descriptor.ref} in form field {name!r}; using a text field")
            return _leaf(name, ControlKind.TEXT, dataclasses.replace(descriptor, kind=Kind.STRING))
        target = _follow(descriptor, ctx, direction)
        if target is None:
            return _leaf(name, ControlKind.TEXT, descriptor)
        type_ref = descriptor.ref
        expanding = expanding | {descriptor.ref}
        descriptor = target

    kind = descriptor.kind
    if kind in _ENUM_KINDS:
        values = descriptor.values
        choice = ControlKind.RADIO_GROUP if len(values) <= MAX_RADIO_OPTIONS else ControlKind.SELECT
        return _leaf(name, choice, descriptor, options=values)
    if kind == Kind.BOOLEAN:
        toggle = ControlKind.SLIDE_TOGGLE if config.admin.boolean_type == "slide-toggle" else ControlKind.CHECKBOX
        return _leaf(name, toggle, descriptor)
    if kind in (Kind.NUMBER, Kind.INTEGER):
        c = descriptor.constraints
        if c.bounded:
            return _leaf(name, ControlKind.SLIDER, descriptor, minimum=c.minimum, maximum=c.maximum)
        return _leaf(name, ControlKind.NUMBER, descriptor)
    if kind == Kind.DATE or (kind == Kind.STRING and descriptor.format in _DATE_FORMATS):
        return _leaf(name, ControlKind.DATEPICKER, descriptor)
    if kind == Kind.STRING and descriptor.format == "password":
        return _leaf(name, ControlKind.PASSWORD, descriptor, input_type="password")
    if kind == Kind.STRING and descriptor.format in ("textarea", "multiline"):
        return _leaf(name, ControlKind.TEXTAREA, descriptor)
    if kind == Kind.BLOB:
        return _leaf(name, ControlKind.FILE, descriptor)
    if kind == Kind.ARRAY and descriptor.items is not None:
        control = _array_control(name, descriptor, ctx, config, direction, expanding)
        if control is not None:
            return control
    if kind in (Kind.OBJECT, Kind.ALL_OF):
        view = flatten_object(descriptor, ctx, direction)
        if view is not None and view.properties:
            children = tuple(
                build_control(n, p, ctx, config, direction, expanding) for n, p in view.properties
            )
            return FormControl(
                name=name,
                kind=ControlKind.GROUP,
                label=title_case(name),
                required=descriptor.required,
                description=descriptor.description,
                children=children,
                type_ref=type_ref,
            )
    if kind == Kind.UNION:
        control = _polymorphic_control(name, descriptor, ctx, config, direction, expanding)
        if control is not None:
            return control

    input_type = {"email": "email", "uri": "url", "url": "url"}.get(descriptor.format or "", "text")
    return _leaf(name, ControlKind.TEXT, descriptor, input_type=input_type)


def _array_control(
    name: str,
    descriptor: TypeDescriptor,
    ctx: ResolutionContext,
    config: GeneratorConfig,
    direction: Direction,
    expanding: frozenset[str],
) -> FormControl | None:
    items = descriptor.items
    if items.kind == Kind.REFERENCE and items.ref in expanding:
        return None
    target = lookup(items, ctx, direction)
    if target is None:
        return None
    if target.kind == Kind.LITERAL_UNION:
        return _leaf(name, ControlKind.BUTTON_TOGGLE_GROUP, descriptor, options=target.literals)
    if target.kind == Kind.STRING and target.format is None:
        return _leaf(name, ControlKind.CHIP_LIST, descriptor)
    if _is_object_like(items, ctx, direction):
        row = build_control(name, dataclasses.replace(items, required=True), ctx, config, direction, expanding)
        if row.kind != ControlKind.GROUP:
            return None
        control = _leaf(name, ControlKind.FORM_ARRAY, descriptor, children=row.children)
        return dataclasses.replace(control, type_ref=row.type_ref)
    return None


def _polymorphic_control(
    name: str,
    descriptor: TypeDescriptor,
    ctx: ResolutionContext,
    config: GeneratorConfig,
    direction: Direction,
    expanding: frozenset[str],
) -> FormControl | None:
    members = descriptor.members
    if len(members) < 2 or not all(
        m.kind == Kind.REFERENCE and m.ref not in expanding and _is_object_like(m, ctx, direction)
        for m in members
    ):
        return None

    option_names = tuple(str(m.ref) for m in members)
    selector = FormControl(
        name=TYPE_SELECTOR,
        kind=ControlKind.SELECT,
        label="Type",
        required=descriptor.required,
        validators=(FormValidator("required"),) if descriptor.required else (),
        initial=None,
        options=option_names,
    )
    groups = []
    for member in members:
        group = build_control(
            str(member.ref), dataclasses.replace(member, required=True), ctx, config, direction, expanding
        )
        groups.append(dataclasses.replace(group, disabled=True))
    return FormControl(
        name=name,
        kind=ControlKind.POLYMORPHIC,
        label=title_case(name),
        required=descriptor.required,
        options=option_names,
        description=descriptor.description,
        children=(selector, *groups),
    )


def _cleared(control: FormControl) -> FormControl:
    return dataclasses.replace(
        control, initial=None, children=tuple(_cleared(c) for c in control.children)
    )


def select_option(control: FormControl, choice: str) -> FormControl:
    """Select one option of a polymorphic control.

    The chosen sub-group is enabled; every sibling sub-group is disabled
    and its values cleared.
    """
    if control.kind != ControlKind.POLYMORPHIC:
        raise ValueError(f"{control.name!r} is not a polymorphic control")
    if choice not in control.options:
        raise ValueError(f"{choice!r} is not an option of {control.name!r}")

    children = []
    for child in control.children:
        if child.name == TYPE_SELECTOR:
            children.append(dataclasses.replace(child, initial=choice))
        elif child.name == choice:
            children.append(dataclasses.replace(child, disabled=False))
        else:
            children.append(dataclasses.replace(_cleared(child), disabled=True))
    return dataclasses.replace(control, children=tuple(children))


def _argument(value: Any) -> str:
    return json.dumps(value, default=str)


def render_validator(validator: FormValidator) -> str:
    owner = "Validators" if validator.builtin else "CustomValidators"
    if validator.builtin and validator.argument is None:
        return f"{owner}.{validator.name}"
    if validator.argument is None:
        return f"{owner}.{validator.name}()"
    return f"{owner}.{validator.name}({_argument(validator.argument)})"


def render_group(children: tuple[FormControl, ...] | list[FormControl], indent: int = 0) -> str:
    """FormGroup text over a list of controls (a whole form or one array row)."""
    if not children:
        return "new FormGroup({})"
    pad = "  " * indent
    lines = [
        f"{pad}  {quote_property(c.name)}: {render_control(c, indent + 1)},"
        for c in children
    ]
    return "new FormGroup({\n" + "\n".join(lines) + f"\n{pad}}})"


def render_control(control: FormControl, indent: int = 0) -> str:
    """Angular reactive-forms constructor text for a control tree.

    Disabled sub-groups are built enabled here; the generated form factory
    disables them after construction.
    """
    if control.kind in GROUP_KINDS:
        return render_group(control.children, indent)
    if control.kind == ControlKind.FORM_ARRAY:
        validators = ", ".join(render_validator(v) for v in control.validators)
        return f"new FormArray<FormGroup>([], [{validators}])"

    value = _argument(control.initial)
    if control.disabled:
        value = f"{{ value: {value}, disabled: true }}"
    if not control.validators:
        return f"new FormControl({value})"
    validators = ", ".join(render_validator(v) for v in control.validators)
    return f"new FormControl({value}, [{validators}])"
