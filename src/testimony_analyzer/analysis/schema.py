"""JSON schema for normalized analysis validation."""

_STRING_OR_NULL = {"type": ["string", "null"]}

RESULT_SCHEMA = {
    "type": "object",
    "properties": {
        "processo": {"type": "object"},
        "depoentes": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "string"},
                    "nome": {"type": "string"},
                    "qualificacao": {"type": "string"},
                    "funcao": _STRING_OR_NULL,
                    "periodo": _STRING_OR_NULL
                },
                "required": ["id", "nome", "qualificacao"]
            }
        },
        "sinteses": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "deponenteId": {"type": "string"},
                    "conteudo": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                "texto": {"type": "string"},
                                "timestamp": {"type": "string"}
                            },
                            "required": ["texto"]
                        }
                    }
                },
                "required": ["deponenteId", "conteudo"]
            }
        },
        "sintesesCondensadas": {"type": "array", "items": {"type": "object"}},
        "sintesesPorTema": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "tema": {"type": "string"},
                    "declaracoes": {"type": "array"}
                },
                "required": ["tema"]
            }
        },
        "analises": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "titulo": {"type": "string"},
                    "alegacaoAutor": {"type": "string"},
                    "defesaRe": {"type": "string"},
                    "provaOral": {"type": "array"},
                    "conclusao": {"type": "string"},
                    "status": {"enum": ["favoravel-autor", "favoravel-re", "parcial"]}
                },
                "required": ["titulo"]
            }
        },
        "contradicoes": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "tipo": {"enum": ["interna", "externa"]},
                    "relevancia": {"enum": ["alta", "media", "baixa"]},
                    "descricao": {"type": "string"}
                }
            }
        },
        "confissoes": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "tipo": {"enum": ["autor", "preposto"]},
                    "gravidade": {"enum": ["alta", "media", "baixa"]}
                }
            }
        },
        "credibilidade": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "deponenteId": {"type": "string"},
                    "pontuacao": {"type": "number", "minimum": 1, "maximum": 5},
                    "criterios": {
                        "type": "object",
                        "properties": {
                            "conhecimentoDireto": {"type": "boolean"}
                        }
                    }
                }
            }
        }
    },
    "required": [
        "processo", "depoentes", "sinteses", "sintesesCondensadas",
        "sintesesPorTema", "analises", "contradicoes", "confissoes",
        "credibilidade"
    ]
}


def validate_result(data: dict) -> tuple[bool, list[str]]:
    """
    Validate a normalized analysis against the schema.

    Args:
        data: Dictionary to validate (AnalysisResult.to_dict())

    Returns:
        Tuple of (is_valid, error_messages)
    """
    import jsonschema

    try:
        validator = jsonschema.Draft7Validator(RESULT_SCHEMA)
        errors = [
            f"{'/'.join(str(p) for p in error.absolute_path) or '<root>'}: {error.message}"
            for error in validator.iter_errors(data)
        ]
    except jsonschema.SchemaError as e:
        return False, [f"Schema error: {e}"]

    return not errors, errors
