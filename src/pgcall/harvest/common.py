"""Naming rules applied to harvested functions."""

from __future__ import annotations

import dataclasses
import logging
import re
from dataclasses import dataclass
from typing import Collection, Iterable

from pgcall.models import Function

log = logging.getLogger(__name__)

# Schemas whose prefix is dropped from function and type names
IMPLICIT_SCHEMAS = ("pg_catalog", "public")

# Return types that do not become a return value
NO_RETURN_TYPES = frozenset({"void", "record", "trigger", "event_trigger"})

# Descriptor for enum and range values, which travel as their text form
TEXT_TYPE = "text"


def strip_schema(name: str) -> str:
    """Drop an implicit schema prefix: ``public.emp`` -> ``emp``."""
    schema, dot, rest = name.partition(".")
    if dot and schema in IMPLICIT_SCHEMAS:
        return rest
    return name


def is_internal(name: str) -> bool:
    """Functions named ``schema._helper`` are not exposed."""
    return "._" in name or name.startswith("_")


def excluded(name: str, exclude: Collection[str]) -> bool:
    """Match lower-cased ``exclude`` against qualified and bare names."""
    lowered = name.lower()
    return lowered in exclude or lowered.rpartition(".")[2] in exclude


@dataclass(frozen=True)
class Replacement:
    """Expose function ``other`` under the name ``name``."""

    name: str
    other: str


_ARROW = re.compile(r"\s*=>\s*")


def parse_replacements(value: str) -> list[Replacement]:
    """Parse ``"pkg.a=>b, c=>d"``, as given to ``--replace``.

    A schema prefix on the left-hand name applies to the right-hand name
    too, so ``hr.get=>get_v2`` and ``hr.get=>hr.get_v2`` are the same.
    """
    replacements = []
    for elt in re.split(r"[,\s]+", _ARROW.sub("=>", value.strip())):
        name, arrow, other = elt.partition("=>")
        if not (arrow and name and other):
            continue
        schema, dot, _ = name.partition(".")
        if dot:
            other = f"{schema}.{other.removeprefix(schema + '.')}"
        replacements.append(Replacement(name, other))
    return replacements


def apply_replacements(
    functions: Iterable[Function], replacements: Iterable[Replacement]
) -> list[Function]:
    """Rename replacement functions over the ones they replace.

    For ``a=>b``, function ``b`` is exposed as ``a``; the original ``a`` and
    ``b`` under its own name both disappear. Names match case-insensitively.
    The result is sorted by name.
    """
    functions = list(functions)
    by_name = {f.name.lower(): f for f in functions}
    renamed: dict[str, Function] = {}
    targets: set[str] = set()
    for r in replacements:
        target = by_name.get(r.other.lower())
        if target is None:
            log.warning("replace %s=>%s: no function %s", r.name, r.other, r.other)
            continue
        log.info("replace %s with %s", r.name, target.name)
        renamed[r.name.lower()] = dataclasses.replace(target, name=r.name)
        targets.add(target.name.lower())

    if not renamed:
        return sorted(functions, key=lambda f: f.name)
    hidden = set(renamed) | targets
    kept = [f for f in functions if f.name.lower() not in hidden]
    return sorted(kept + list(renamed.values()), key=lambda f: f.name)
