"""Unit tests for document.py."""

import pytest
from prompt_builder import document
from prompt_builder.document import Parameters, PromptDocument
from prompt_builder.errors import ImportParseError


class TestParseInputLine:
    """Tests for splitting input lines."""

    def test_name_and_value(self):
        assert document.parse_input_line("topic: AI") == ("topic", "AI")

    def test_name_only(self):
        pair = document.parse_input_line("topic")
        assert pair.name == "topic"
        assert pair.value == ""

    def test_only_first_colon_splits(self):
        assert document.parse_input_line("a:b:c") == ("a", "b:c")

    def test_whitespace_is_trimmed(self):
        assert document.parse_input_line("  url :  http://x.test:80 ") == ("url", "http://x.test:80")


class TestFieldEditing:
    """Tests for scalar and parameter assignment."""

    def test_set_field(self):
        doc = PromptDocument()
        doc.set_field("role", "Editor")
        assert doc.role == "Editor"

    def test_set_unknown_field(self):
        with pytest.raises(KeyError):
            PromptDocument().set_field("colour", "red")

    def test_set_field_wrong_type(self):
        with pytest.raises(TypeError):
            PromptDocument().set_field("task", 42)

    def test_set_parameter_coerces_max_tokens(self):
        doc = PromptDocument()
        doc.set_parameter("max_tokens", 2048.0)
        assert doc.parameters.max_tokens == 2048
        assert isinstance(doc.parameters.max_tokens, int)

    def test_set_penalty_to_none(self):
        doc = PromptDocument()
        doc.set_parameter("presence_penalty", None)
        assert doc.parameters.presence_penalty is None

    def test_set_parameter_rejects_text(self):
        with pytest.raises(TypeError):
            PromptDocument().set_parameter("temperature", "hot")


class TestListOperations:
    """Tests for list editing."""

    def test_add_appends_blank_item(self):
        doc = PromptDocument(steps=["one"])
        doc.add_item("steps")
        assert doc.steps == ["one", ""]

    def test_remove_at(self):
        doc = PromptDocument(steps=["a", "b", "c"])
        doc.remove_item("steps", 1)
        assert doc.steps == ["a", "c"]

    def test_remove_out_of_range_is_noop(self):
        doc = PromptDocument(steps=["a"])
        doc.remove_item("steps", 5)
        assert doc.steps == ["a"]

    def test_set_at(self):
        doc = PromptDocument(examples=["a", "b"])
        doc.set_item("examples", 1, "B")
        assert doc.examples == ["a", "B"]

    def test_move_first_up_is_noop(self):
        doc = PromptDocument(constraints=["a", "b", "c"])
        doc.move_item("constraints", 0, -1)
        assert doc.constraints == ["a", "b", "c"]

    def test_move_last_down_is_noop(self):
        doc = PromptDocument(constraints=["a", "b", "c"])
        doc.move_item("constraints", 2, 1)
        assert doc.constraints == ["a", "b", "c"]

    def test_move_swaps_neighbours_only(self):
        doc = PromptDocument(constraints=["a", "b", "c", "d"])
        doc.move_item("constraints", 1, 1)
        assert doc.constraints == ["a", "c", "b", "d"]

        doc.move_item("constraints", 2, -1)
        assert doc.constraints == ["a", "b", "c", "d"]

    def test_unknown_list_field(self):
        with pytest.raises(KeyError):
            PromptDocument().add_item("role")


class TestExportShape:
    """Tests for deriving the exported object."""

    def test_blank_scalars_are_omitted(self):
        shape = document.to_export_shape(PromptDocument(role="  Analyst  ", task="   "))

        assert shape["role"] == "Analyst"
        assert "task" not in shape
        assert "title" not in shape

    def test_blank_entries_are_dropped(self, sample_document):
        shape = document.to_export_shape(sample_document)

        assert shape["constraints"] == ["No brand names", "Answer in English"]
        assert shape["steps"] == ["Read input", "Classify"]

    def test_inputs_become_pairs(self, sample_document):
        shape = document.to_export_shape(sample_document)

        assert shape["inputs"] == [
            {"name": "topic", "value": "AI"},
            {"name": "ticket", "value": ""},
        ]

    def test_key_order(self, sample_document):
        shape = document.to_export_shape(sample_document)

        assert list(shape) == [
            "title", "role", "task", "audience", "style", "tone",
            "constraints", "steps", "inputs", "examples", "parameters",
        ]

    def test_inactive_penalties_are_omitted(self):
        doc = PromptDocument(parameters=Parameters(presence_penalty=None, frequency_penalty=None))
        shape = document.to_export_shape(doc)

        assert shape["parameters"] == {"temperature": 0.7, "top_p": 1.0, "max_tokens": 1024}

    def test_export_does_not_mutate_document(self, sample_document):
        before = sample_document.copy()
        document.to_export_shape(sample_document)
        assert sample_document == before


class TestApplyImportedShape:
    """Tests for rebuilding documents from imported objects."""

    def test_empty_object_gives_defaults(self):
        doc = document.apply_imported_shape({})
        assert doc == PromptDocument()

    def test_inputs_are_flattened(self):
        doc = document.apply_imported_shape({
            "inputs": [
                {"name": "topic", "value": "AI"},
                {"name": "ticket", "value": ""},
                {"name": "count", "value": 3},
                "raw: line",
            ]
        })
        assert doc.inputs == ["topic: AI", "ticket", "count: 3", "raw: line"]

    def test_unknown_keys_are_ignored(self):
        doc = document.apply_imported_shape({"role": "Tutor", "colour": "red", "version": 3})
        assert doc.role == "Tutor"

    def test_wrong_types_fall_back(self):
        doc = document.apply_imported_shape({
            "role": 12,
            "steps": "not a list",
            "constraints": ["keep", 5, None],
            "parameters": {"temperature": "hot", "top_p": True, "max_tokens": 1.5},
        })

        assert doc.role == ""
        assert doc.steps == []
        assert doc.constraints == ["keep"]
        assert doc.parameters == Parameters()

    def test_parameters_not_an_object(self):
        doc = document.apply_imported_shape({"parameters": [1, 2]})
        assert doc.parameters == Parameters()

    def test_missing_parameters_get_documented_defaults(self):
        doc = document.apply_imported_shape({"parameters": {"temperature": 0.2}})

        assert doc.parameters.temperature == 0.2
        assert doc.parameters.top_p == 1.0
        assert doc.parameters.max_tokens == 1024
        assert doc.parameters.presence_penalty == 0.0
        assert doc.parameters.frequency_penalty == 0.0

    def test_oversized_numbers_fall_back(self):
        huge = 10 ** 400
        doc = document.apply_imported_shape({
            "parameters": {"temperature": huge, "frequency_penalty": -huge, "max_tokens": float("inf")}
        })
        assert doc.parameters == Parameters()

    def test_non_object_is_rejected(self):
        with pytest.raises(ImportParseError):
            document.apply_imported_shape(["role", "task"])

    def test_round_trip(self, sample_document):
        restored = document.apply_imported_shape(document.to_export_shape(sample_document))

        assert restored.role == sample_document.role
        assert restored.constraints == ["No brand names", "Answer in English"]
        assert restored.steps == ["Read input", "Classify"]
        assert restored.inputs == ["topic: AI", "ticket"]
        assert restored.parameters == sample_document.parameters
        assert document.to_export_shape(restored) == document.to_export_shape(sample_document)

    def test_round_trip_keeps_extra_colons(self):
        doc = PromptDocument(inputs=["a:b:c", ": orphan value"])
        restored = document.apply_imported_shape(document.to_export_shape(doc))

        assert document.to_export_shape(restored)["inputs"] == [
            {"name": "a", "value": "b:c"},
            {"name": "", "value": "orphan value"},
        ]

    def test_snapshot_round_trip_keeps_blank_entries(self, sample_document):
        restored = document.apply_imported_shape(sample_document.to_snapshot())
        assert restored == sample_document
