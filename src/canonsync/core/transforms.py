"""Dual-format companion transforms.

A companion is fully derived from a canonical markdown file and is always
regenerated, never patched. Each transform carries a version that is
written into the companion header; bumping it regenerates every companion.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Mapping

from canonsync.core.exceptions import GenerationError
from canonsync.core.models import CanonicalSource
from canonsync.core.utils.frontmatter import parse_frontmatter

GENERATED_HEADER_PREFIX = "# Generated by canonsync from "

# Claude/Cursor style argument placeholder -> Gemini CLI placeholder
_ARGUMENT_PLACEHOLDERS = {"$ARGUMENTS": "{{args}}"}


@dataclass(frozen=True, slots=True)
class CompanionTransform:
    name: str
    version: int
    extension: str
    render: Callable[[CanonicalSource, str, int], str]

    def companion_filename(self, source: CanonicalSource) -> str:
        return f"{source.stem}.{self.extension}"

    def generate(self, source: CanonicalSource, raw: bytes) -> str:
        """Render the companion for ``source`` from its raw bytes.

        Raises:
            GenerationError: If the canonical content cannot be transformed
        """
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise GenerationError(
                f"Canonical source is not valid UTF-8: {exc}",
                source=source.name,
            ) from exc
        return self.render(source, text, self.version)


def generated_header(source: CanonicalSource, transform: str, version: int) -> str:
    return f"{GENERATED_HEADER_PREFIX}{source.name} ({transform} transform v{version}). Do not edit."


def _toml_escape_string(value: str) -> str:
    out: list[str] = []
    for ch in value:
        if ch == "\\":
            out.append("\\\\")
        elif ch == '"':
            out.append('\\"')
        elif ch == "\n":
            out.append("\\n")
        elif ch == "\t":
            out.append("\\t")
        elif ch == "\r":
            out.append("\\r")
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            out.append(f"\\u{ord(ch):04X}")
        else:
            out.append(ch)
    return '"' + "".join(out) + '"'


def _toml_multiline_string(value: str) -> str:
    """Render ``value`` as a TOML multi-line basic string."""
    out: list[str] = []
    quotes = 0
    for ch in value:
        if ch == '"':
            # Never emit three consecutive unescaped quotes.
            quotes += 1
            out.append('\\"' if quotes == 3 else '"')
            if quotes == 3:
                quotes = 0
            continue
        quotes = 0
        if ch == "\\":
            out.append("\\\\")
        elif ch in ("\n", "\t"):
            out.append(ch)
        elif ch == "\r":
            out.append("\\r")
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            out.append(f"\\u{ord(ch):04X}")
        else:
            out.append(ch)
    body = "".join(out)
    if body.endswith('"'):
        # A trailing quote would merge with the closing delimiter.
        body = body[:-1] + '\\"'
    return '"""\n' + body + '"""'


def _render_toml(source: CanonicalSource, text: str, version: int) -> str:
    try:
        doc = parse_frontmatter(text)
    except ValueError as exc:
        raise GenerationError(str(exc), source=source.name) from exc

    description = doc.frontmatter.get("description")
    if description is not None and not isinstance(description, str):
        raise GenerationError(
            f"Frontmatter 'description' must be a string, got {type(description).__name__}",
            source=source.name,
        )

    prompt = doc.content.lstrip("\r\n").rstrip()
    for placeholder, replacement in _ARGUMENT_PLACEHOLDERS.items():
        prompt = prompt.replace(placeholder, replacement)

    lines = [generated_header(source, "toml", version)]
    if description:
        lines.append(f"description = {_toml_escape_string(description.strip())}")
    lines.append(f"prompt = {_toml_multiline_string(prompt + chr(10))}")
    return "\n".join(lines) + "\n"


TRANSFORMS: Mapping[str, CompanionTransform] = {
    "toml": CompanionTransform(name="toml", version=1, extension="toml", render=_render_toml),
}


def get_transform(name: str | None) -> CompanionTransform:
    if name is None or name not in TRANSFORMS:
        raise GenerationError(f"Unknown companion format: {name!r}")
    return TRANSFORMS[name]


__all__ = [
    "GENERATED_HEADER_PREFIX",
    "CompanionTransform",
    "TRANSFORMS",
    "generated_header",
    "get_transform",
]
