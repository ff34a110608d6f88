# tests/unit/test_personas.py
"""Tests for the persona catalog."""

import pytest

from nullmodel.content import ERROR_SENTINEL_PREFIX
from nullmodel.fault_injector import FaultKind
from nullmodel.personas import (
    DEFAULT_PERSONA,
    ERROR_PERSONA,
    PERSONAS,
    TOOL_CALL_PERSONA,
    PersonaDefinition,
    ToolCallVariant,
    list_personas,
    resolve_persona,
)


class TestCatalog:
    """Tests for the built-in catalog."""

    def test_expected_personas_present(self) -> None:
        assert set(PERSONAS) == {
            "balanced",
            "verbose",
            "terse",
            "code",
            "markdown",
            "tool_calls",
            "error_prone",
        }

    def test_catalog_is_read_only(self) -> None:
        with pytest.raises(TypeError):
            PERSONAS["new"] = PERSONAS[DEFAULT_PERSONA]  # type: ignore[index]

    def test_keys_match_persona_names(self) -> None:
        for key, persona in PERSONAS.items():
            assert key == persona.name

    def test_tool_call_persona_pairs_by_index(self) -> None:
        persona = PERSONAS[TOOL_CALL_PERSONA]
        assert persona.has_tool_calls
        assert len(persona.tool_calls) == len(persona.responses)

    def test_error_persona_encodes_known_fault_kinds(self) -> None:
        """Every error sentinel names a fault kind that has a provider payload."""
        persona = PERSONAS[ERROR_PERSONA]
        kinds = [text.removeprefix(ERROR_SENTINEL_PREFIX) for text in persona.responses if text.startswith(ERROR_SENTINEL_PREFIX)]
        assert kinds
        for kind in kinds:
            assert FaultKind(kind).is_error

    def test_error_persona_has_a_plain_response(self) -> None:
        persona = PERSONAS[ERROR_PERSONA]
        assert any(not text.startswith(ERROR_SENTINEL_PREFIX) for text in persona.responses)

    def test_list_personas(self) -> None:
        listed = list_personas()
        assert [entry["name"] for entry in listed] == list(PERSONAS)
        assert all(entry["description"] for entry in listed)


class TestResolvePersona:
    """Tests for resolve_persona()."""

    def test_known_name(self) -> None:
        assert resolve_persona("terse").name == "terse"

    def test_unknown_name_uses_fallback(self) -> None:
        assert resolve_persona("no-such-persona", fallback="code").name == "code"

    def test_missing_hint_uses_fallback(self) -> None:
        assert resolve_persona(None, fallback="markdown").name == "markdown"

    @pytest.mark.parametrize("hint", [["terse"], {"name": "terse"}, 42, True])
    def test_non_string_hint_uses_fallback(self, hint: object) -> None:
        """Hints come from request JSON and may be any type."""
        assert resolve_persona(hint, fallback="verbose").name == "verbose"

    def test_unknown_fallback_uses_default(self) -> None:
        assert resolve_persona("nope", fallback="also-nope").name == DEFAULT_PERSONA

    def test_default_fallback(self) -> None:
        assert resolve_persona("nope").name == DEFAULT_PERSONA


class TestPersonaDefinition:
    """Tests for PersonaDefinition validation."""

    def test_requires_responses(self) -> None:
        with pytest.raises(ValueError, match="at least one response"):
            PersonaDefinition(name="empty", description="", responses=())

    def test_rejects_mismatched_tool_calls(self) -> None:
        with pytest.raises(ValueError, match="pairs tool calls with responses"):
            PersonaDefinition(
                name="broken",
                description="",
                responses=("one", "two"),
                tool_calls=(ToolCallVariant(name="f", arguments={}),),
            )

    def test_text_only_persona_has_no_tool_calls(self) -> None:
        persona = PersonaDefinition(name="plain", description="", responses=("hi",))
        assert not persona.has_tool_calls

    def test_is_frozen(self) -> None:
        persona = PERSONAS[DEFAULT_PERSONA]
        with pytest.raises(AttributeError):
            persona.name = "renamed"  # type: ignore[misc]
