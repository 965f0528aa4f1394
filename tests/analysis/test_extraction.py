"""Tests for JSON extraction and result normalization."""

import json

import pytest

from testimony_analyzer.analysis.extraction import (
    build_condensed_narratives, extract_json, normalize_result, parse_response
)
from testimony_analyzer.analysis.models import (
    RESULT_LIST_FIELDS, AnalysisResult, MalformedOutputError
)


class TestExtractJson:
    """Test extraction of JSON payloads from model text."""

    def test_plain_json_unchanged(self):
        assert extract_json('{"a": 1}') == '{"a": 1}'

    def test_json_code_fence(self):
        text = 'Here it is:\n```json\n{"a": [1, 2]}\n```\nHope it helps.'
        assert extract_json(text) == '{"a": [1, 2]}'

    def test_uppercase_fence_and_bare_fence(self):
        assert extract_json('```JSON\n{"a": 1}\n```') == '{"a": 1}'
        assert extract_json('```\n{"b": 2}\n```') == '{"b": 2}'

    def test_prose_around_object(self):
        text = 'Sure! {"outer": {"inner": true}} Let me know.'
        assert extract_json(text) == '{"outer": {"inner": true}}'

    def test_no_braces_returns_cleaned_text(self):
        assert extract_json("  no json here  ") == "no json here"

    @pytest.mark.parametrize("text", [
        '```json\n{"a": 1}\n```',
        'prefix {"a": {"b": 2}} suffix',
        'nothing at all',
    ])
    def test_idempotent(self, text):
        once = extract_json(text)
        assert extract_json(once) == once


class TestParseResponse:
    """Test parsing with diagnostics."""

    def test_parses_fenced_json(self):
        assert parse_response('```json\n{"processo": {"numero": "1"}}\n```') == {
            "processo": {"numero": "1"}
        }

    def test_malformed_output_keeps_raw_response(self):
        raw = 'The analysis: {"depoentes": [1, 2,}'
        with pytest.raises(MalformedOutputError) as exc_info:
            parse_response(raw)

        assert exc_info.value.raw_response == raw
        assert exc_info.value.extracted == '{"depoentes": [1, 2,}'

    def test_malformed_output_is_logged(self, caplog):
        with pytest.raises(MalformedOutputError):
            parse_response("not json")
        assert "Failed to parse model response" in caplog.text


class TestNormalizeResult:
    """Test coercion into the fixed result schema."""

    def test_empty_object_yields_complete_result(self):
        result = normalize_result({})

        assert result.processo == {}
        for attr in RESULT_LIST_FIELDS.values():
            assert getattr(result, attr) == []

    @pytest.mark.parametrize("data", [None, [], "text", 42])
    def test_non_object_input(self, data):
        assert normalize_result(data) == AnalysisResult()

    def test_wrong_types_replaced(self):
        result = normalize_result({
            "processo": "0001234",
            "depoentes": {"id": "d1"},
            "analises": None,
            "contradicoes": [{"tipo": "interna"}]
        })

        assert result.processo == {}
        assert result.depoentes == []
        assert result.analises == []
        assert result.contradicoes == [{"tipo": "interna"}]

    def test_present_sections_preserved(self):
        data = {
            "processo": {"numero": "0001234-56.2024.5.02.0001"},
            "depoentes": [{"id": "d1", "nome": "Ana", "qualificacao": "autor"}],
            "sintesesCondensadas": [{"deponente": "AUTOR ANA", "textoCorrente": "x"}]
        }
        result = normalize_result(data)

        assert result.processo == data["processo"]
        assert result.depoentes == data["depoentes"]
        assert result.sinteses_condensadas == data["sintesesCondensadas"]

    def test_condensed_narratives_rebuilt_when_missing(self):
        result = normalize_result({
            "depoentes": [{"id": "d1", "nome": "Ana Souza", "qualificacao": "autor"}],
            "sinteses": [{"deponenteId": "d1", "conteudo": [
                {"texto": "trabalhou até 2023", "timestamp": "1m 05s"},
                {"texto": "fazia horas extras", "timestamp": "2m 10s"}
            ]}]
        })

        assert result.sinteses_condensadas == [{
            "deponente": "AUTOR ANA SOUZA",
            "qualificacao": "autor",
            "textoCorrente": "trabalhou até 2023 (1m 05s); fazia horas extras (2m 10s)"
        }]

    def test_to_dict_round_trips_through_json(self):
        result = normalize_result({"processo": {"numero": "1"}})
        data = json.loads(json.dumps(result.to_dict()))
        assert set(data) == {"processo", *RESULT_LIST_FIELDS}


class TestBuildCondensedNarratives:
    """Test narrative generation from detailed statements."""

    def test_unknown_deponent(self):
        narratives = build_condensed_narratives(
            [{"deponenteId": "x", "conteudo": [{"texto": "disse algo", "timestamp": "0m 01s"}]}],
            []
        )
        assert narratives == [{
            "deponente": "DEPOENTE",
            "qualificacao": "desconhecido",
            "textoCorrente": "disse algo (0m 01s)"
        }]

    def test_witness_labels(self):
        narratives = build_condensed_narratives(
            [{"deponenteId": "t1", "conteudo": []}],
            [{"id": "t1", "nome": "Carlos", "qualificacao": "testemunha-re"}]
        )
        assert narratives[0]["deponente"] == "TESTEMUNHA DA RÉ CARLOS"
        assert narratives[0]["textoCorrente"] == ""

    def test_skips_non_object_entries(self):
        assert build_condensed_narratives(["junk", None], []) == []

    def test_wrongly_typed_deponent_fields(self):
        narratives = build_condensed_narratives(
            [
                {"deponenteId": "d1", "conteudo": [{"texto": "a", "timestamp": "0m 01s"}]},
                {"deponenteId": ["d2"], "conteudo": 42},
            ],
            [
                {"id": "d1", "nome": 7, "qualificacao": "preposto"},
                {"id": ["d2"], "nome": "Bruno", "qualificacao": "autor"},
            ]
        )

        assert narratives == [
            {"deponente": "PREPOSTO", "qualificacao": "preposto", "textoCorrente": "a (0m 01s)"},
            {"deponente": "DEPOENTE", "qualificacao": "desconhecido", "textoCorrente": ""},
        ]


class TestNormalizeResultTypeTolerance:
    """Test that any parseable JSON still yields a complete result."""

    @pytest.mark.parametrize("data", [
        {"depoentes": [{"id": "d1", "nome": 7}], "sinteses": [{"deponenteId": "d1", "conteudo": []}]},
        {"depoentes": [{"id": ["x"], "nome": "Ana"}], "sinteses": [{"deponenteId": "x", "conteudo": []}]},
        {"depoentes": [{"id": "d1", "qualificacao": {"a": 1}}], "sinteses": [{"deponenteId": "d1", "conteudo": 5}]},
        {"sinteses": [{"deponenteId": None, "conteudo": "text"}]},
    ])
    def test_complete_result(self, data):
        result = normalize_result(data)

        assert len(result.sinteses_condensadas) == 1
        for attr in RESULT_LIST_FIELDS.values():
            assert isinstance(getattr(result, attr), list)
