"""Tests for the TOML companion transform."""
from __future__ import annotations

import tomllib
from pathlib import Path

import pytest


def _source(name: str = "commands/foo"):
    from canonsync.core.models import CanonicalSource, ContentKind

    stem = name.rsplit("/", 1)[-1]
    return CanonicalSource(name=name, path=Path(f"/repo/.ai/commands/{stem}.md"), kind=ContentKind.COMMAND_PROMPT)


def _generate(text: str | bytes, name: str = "commands/foo") -> str:
    from canonsync.core.transforms import get_transform

    raw = text.encode("utf-8") if isinstance(text, str) else text
    return get_transform("toml").generate(_source(name), raw)


class TestTomlTransform:
    """Test markdown prompt -> TOML companion generation."""

    def test_exact_output(self) -> None:
        output = _generate("---\ndescription: Say hello\n---\n\nGreet $ARGUMENTS warmly.\n")

        assert output == (
            "# Generated by canonsync from commands/foo (toml transform v1). Do not edit.\n"
            'description = "Say hello"\n'
            'prompt = """\n'
            "Greet {{args}} warmly.\n"
            '"""\n'
        )

    def test_output_parses_as_toml(self) -> None:
        output = _generate(
            '---\ndescription: Review a "plan"\n---\n\nReview the plan in $ARGUMENTS.\nReport gaps.\n',
            name="commands/bar",
        )

        data = tomllib.loads(output)

        assert data == {
            "description": 'Review a "plan"',
            "prompt": "Review the plan in {{args}}.\nReport gaps.\n",
        }

    def test_without_frontmatter(self) -> None:
        data = tomllib.loads(_generate("Just do it.\n"))

        assert data == {"prompt": "Just do it.\n"}

    @pytest.mark.parametrize(
        "body",
        [
            'Use """triple""" quotes',
            'Ends with a quote "',
            "Windows path C:\\Users\\dev and a tab\there",
            'Many quotes """""" in a row',
        ],
    )
    def test_awkward_content_survives(self, body: str) -> None:
        data = tomllib.loads(_generate(f"---\ndescription: x\n---\n{body}\n"))

        assert data["prompt"] == body + "\n"

    def test_description_escaping(self) -> None:
        text = '---\ndescription: "back\\\\slash and \\"quotes\\""\n---\nbody\n'

        data = tomllib.loads(_generate(text))

        assert data["description"] == 'back\\slash and "quotes"'

    def test_deterministic(self) -> None:
        text = "---\ndescription: Say hello\n---\n\nGreet $ARGUMENTS.\n"

        assert _generate(text) == _generate(text)

    def test_companion_filename(self) -> None:
        from canonsync.core.transforms import get_transform

        assert get_transform("toml").companion_filename(_source("commands/speckit.plan")) == "speckit.plan.toml"


class TestTomlTransformErrors:
    """Malformed canonical prompts raise GenerationError."""

    def test_invalid_frontmatter_yaml(self) -> None:
        from canonsync.core.exceptions import GenerationError

        with pytest.raises(GenerationError, match="Invalid YAML"):
            _generate("---\ndescription: [unclosed\n---\nbody\n")

    def test_frontmatter_not_mapping(self) -> None:
        from canonsync.core.exceptions import GenerationError

        with pytest.raises(GenerationError, match="mapping"):
            _generate("---\n- a\n- b\n---\nbody\n")

    def test_description_must_be_string(self) -> None:
        from canonsync.core.exceptions import GenerationError

        with pytest.raises(GenerationError, match="'description' must be a string") as exc_info:
            _generate("---\ndescription: [a, b]\n---\nbody\n")

        assert exc_info.value.context["source"] == "commands/foo"

    def test_non_utf8_source(self) -> None:
        from canonsync.core.exceptions import GenerationError

        with pytest.raises(GenerationError, match="not valid UTF-8"):
            _generate(b"\xff\xfeprompt")

    def test_unknown_format(self) -> None:
        from canonsync.core.exceptions import GenerationError
        from canonsync.core.transforms import get_transform

        with pytest.raises(GenerationError, match="Unknown companion format"):
            get_transform("yaml")
