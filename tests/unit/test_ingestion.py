"""Tests for course document parsing."""

from __future__ import annotations

import json

import pytest

from homelearn.courses.ingestion import (
    CourseFormatError,
    CourseParseError,
    parse_course_bytes,
    parse_course_document,
    parse_level,
    route_title,
)


class TestRouteTitles:
    def test_known_keys(self) -> None:
        assert route_title("ruta_aprendizaje_crochet") == "Ruta de Aprendizaje en Crochet"
        assert route_title("leverage_crypto") == "Leverage Crypto Trading"
        assert route_title("hipertrofia_fat_loss") == "Hipertrofia y Pérdida de Grasa"
        assert route_title("ruta_ia_en_administracion_y_contaduria") == "Ruta de IA en Administración y Contaduría"

    def test_unknown_key_title_cased_per_word(self) -> None:
        assert route_title("intro_to_python") == "Intro To Python"

    def test_unknown_key_keeps_rest_of_word(self) -> None:
        """Only the first letter changes; existing capitals stay."""
        assert route_title("learn_SQL_fast") == "Learn SQL Fast"
        assert route_title("mIxEd") == "MIxEd"


class TestShapeA:
    def test_crochet_scenario(self) -> None:
        parsed = parse_course_document({"ruta_aprendizaje_crochet": [{"nivel": "1", "temas": ["t1"]}]})
        assert parsed.title == "Ruta de Aprendizaje en Crochet"
        assert parsed.description == "Curso completo de ruta de aprendizaje en crochet"
        assert len(parsed.levels) == 1
        assert parsed.levels[0].title == "1"
        assert parsed.levels[0].topics == ["t1"]

    def test_level_count_and_order_preserved(self) -> None:
        levels = [{"nivel": f"L{i}"} for i in range(7)]
        parsed = parse_course_document({"some_route": levels})
        assert [lvl.order for lvl in parsed.levels] == [1, 2, 3, 4, 5, 6, 7]
        assert [lvl.title for lvl in parsed.levels] == [f"L{i}" for i in range(7)]

    def test_first_value_not_a_list(self) -> None:
        with pytest.raises(CourseFormatError):
            parse_course_document({"route": "nope"})

    def test_empty_levels(self) -> None:
        with pytest.raises(CourseFormatError, match="Levels array is required"):
            parse_course_document({"route": []})


class TestShapeB:
    def test_explicit_course(self) -> None:
        parsed = parse_course_document({
            "title": "  Python  ",
            "description": "Basics",
            "levels": [{"title": "Intro"}, {"level": "Loops"}],
        })
        assert parsed.title == "Python"
        assert parsed.description == "Basics"
        assert [lvl.title for lvl in parsed.levels] == ["Intro", "Loops"]

    def test_description_optional(self) -> None:
        parsed = parse_course_document({"title": "X", "levels": [{}]})
        assert parsed.description == ""

    def test_checked_before_shape_a(self) -> None:
        """A doc with both title and levels is an explicit course even if its first key holds a list."""
        parsed = parse_course_document({"extra": [1, 2], "title": "Real", "levels": [{"title": "A"}]})
        assert parsed.title == "Real"
        assert len(parsed.levels) == 1

    @pytest.mark.parametrize("title", ["", "   ", None, 42])
    def test_title_required(self, title: object) -> None:
        with pytest.raises(CourseFormatError, match="Title is required"):
            parse_course_document({"title": title, "levels": [{}]})

    @pytest.mark.parametrize("levels", [[], None, "x", {}])
    def test_levels_required(self, levels: object) -> None:
        with pytest.raises(CourseFormatError, match="Levels array is required"):
            parse_course_document({"title": "T", "levels": levels})


class TestLevelAliases:
    def test_title_alias_order(self) -> None:
        assert parse_level({"nivel": "a", "level": "b", "title": "c"}, 1).title == "a"
        assert parse_level({"level": "b", "title": "c"}, 1).title == "b"
        assert parse_level({"title": "c"}, 1).title == "c"

    def test_default_title(self) -> None:
        assert parse_level({}, 4).title == "Level 4"

    def test_blank_values_fall_through(self) -> None:
        level = parse_level({"nivel": "", "level": None, "title": "T", "temas": [], "topics": ["x"]}, 1)
        assert level.title == "T"
        assert level.topics == ["x"]

    def test_zero_title_kept(self) -> None:
        assert parse_level({"nivel": 0, "title": "T"}, 2).title == "0"

    def test_english_and_spanish_lists(self) -> None:
        level = parse_level(
            {"objetivos": ["o"], "tools": ["t"], "recursos": ["r"], "temas": ["a", "b"]},
            1,
        )
        assert level.objectives == ["o"]
        assert level.tools == ["t"]
        assert level.resources == ["r"]
        assert level.topics == ["a", "b"]

    def test_scalar_wrapped_and_items_stringified(self) -> None:
        level = parse_level({"topics": "solo", "tools": [1, 2.5, True]}, 1)
        assert level.topics == ["solo"]
        assert level.tools == ["1", "2.5", "True"]

    def test_numeric_title_coerced(self) -> None:
        assert parse_level({"nivel": 3}, 1).title == "3"

    def test_non_object_level(self) -> None:
        level = parse_level("just text", 2)
        assert level.title == "Level 2"
        assert level.topics == []

    def test_content_bundles_lists(self) -> None:
        level = parse_level({"topics": ["a"], "tools": ["b"]}, 1)
        assert level.content == {"topics": ["a"], "objectives": [], "tools": ["b"], "resources": []}


class TestInvalidDocuments:
    @pytest.mark.parametrize("doc", [[], "text", 5, None, {}])
    def test_not_a_course(self, doc: object) -> None:
        with pytest.raises(CourseFormatError):
            parse_course_document(doc)

    def test_errors_are_value_errors(self) -> None:
        assert issubclass(CourseParseError, ValueError)
        assert issubclass(CourseFormatError, ValueError)
        assert not issubclass(CourseParseError, CourseFormatError)


class TestParseBytes:
    def test_valid_bytes(self) -> None:
        raw = json.dumps({"ruta_aprendizaje_crochet": [{"nivel": "1", "temas": ["t1"]}]}).encode()
        assert parse_course_bytes(raw).title == "Ruta de Aprendizaje en Crochet"

    def test_invalid_json(self) -> None:
        with pytest.raises(CourseParseError, match="Invalid JSON file"):
            parse_course_bytes(b"{not json")

    def test_invalid_utf8(self) -> None:
        with pytest.raises(CourseParseError):
            parse_course_bytes(b"\xff\xfe\xfa{")

    def test_valid_json_wrong_shape(self) -> None:
        with pytest.raises(CourseFormatError):
            parse_course_bytes(b"[1, 2, 3]")
