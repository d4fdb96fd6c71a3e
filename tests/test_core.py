"""Tests for diagnostics, the lexer and token verification."""

import pytest

from dbn.core import (
    DBNError, InputError, InternalError, Token, TokenType, lex, verify_tokens,
)

# ###############
# Test Helpers
# ###############


def _values(source: str) -> list[str]:
    return [tok.value for tok in lex(source)]


def _positions(source: str) -> list[tuple[str, int, int]]:
    return [(tok.value, tok.line, tok.column) for tok in lex(source)]


# ###############
# Diagnostics
# ###############


class TestErrors:
    def test_rendering_includes_message_and_location(self) -> None:
        token = Token(TokenType.WORD, "error", 73, 6, "this is an error line!")
        output = str(InputError("testMessage", token))
        assert "Error" in output
        assert "testMessage" in output
        assert "73:6" in output
        assert "  this is an error line!" in output

    def test_caret_points_at_column(self) -> None:
        token = Token(TokenType.WORD, "error", 73, 6, "this is an error line!")
        last_line = str(InputError("testMessage", token)).splitlines()[-1]
        assert last_line == " " * 8 + "^"

    def test_unknown_location(self) -> None:
        error = InternalError("broken")
        assert error.location is None
        assert str(error).endswith("unknown")

    def test_category_is_class_name(self) -> None:
        assert InputError("x").category == "InputError"
        assert InternalError("x").category == "InternalError"

    def test_hierarchy(self) -> None:
        assert issubclass(InputError, DBNError)
        assert issubclass(InternalError, DBNError)
        assert not issubclass(InputError, InternalError)


# ###############
# Lexer
# ###############


class TestLexer:
    def test_words_and_numbers(self) -> None:
        tokens = lex("this is not valid syntax 2 4 g")
        assert [tok.type for tok in tokens] == [TokenType.WORD] * 5 + [TokenType.NUMBER] * 2 + [TokenType.WORD]
        assert _values("this is not valid syntax 2 4 g") == ["this", "is", "not", "valid", "syntax", "2", "4", "g"]

    def test_empty_source(self) -> None:
        assert lex("") == []
        assert lex("   \n\t\n") == []

    def test_line_and_column_numbers(self) -> None:
        source = "something else\nis is here\n { }\nalso here\n"
        assert _positions(source) == [
            ("something", 1, 0),
            ("else", 1, 10),
            ("is", 2, 0),
            ("is", 2, 3),
            ("here", 2, 6),
            ("{", 3, 1),
            ("}", 3, 3),
            ("also", 4, 0),
            ("here", 4, 5),
        ]

    def test_carriage_returns_are_whitespace(self) -> None:
        tokens = lex("Line one\r\nline two\r\nline three")
        assert [(tok.value, tok.line) for tok in tokens] == [
            ("Line", 1), ("one", 1), ("line", 2), ("two", 2), ("line", 3), ("three", 3),
        ]

    def test_context_is_the_source_line(self) -> None:
        tokens = lex("Paper 0\nPen 100")
        assert tokens[3].context == "Pen 100"

    def test_comments_are_stripped(self) -> None:
        source = (
            "\n// this is a comment in the program\n"
            "Line 100\n"
            "Pen 100 // this is an inline comment.\n"
            "this is an invalid program\n"
        )
        assert _values(source) == ["Line", "100", "Pen", "100", "this", "is", "an", "invalid", "program"]

    def test_symbols(self) -> None:
        tokens = lex("{ something { { }")
        assert [(tok.type, tok.value) for tok in tokens] == [
            (TokenType.SYMBOL, "{"),
            (TokenType.WORD, "something"),
            (TokenType.SYMBOL, "{"),
            (TokenType.SYMBOL, "{"),
            (TokenType.SYMBOL, "}"),
        ]

    def test_symbols_split_adjacent_tokens(self) -> None:
        assert [(tok.value, tok.column) for tok in lex("[0 1]")] == [("[", 0), ("0", 1), ("1", 3), ("]", 4)]

    def test_calculation_token_count(self) -> None:
        assert len(lex("Line (X - r) (Y - r) (X + r) (Y + r)")) == 21

    def test_question_mark_is_separate(self) -> None:
        assert _values("Same? 3 3") == ["Same", "?", "3", "3"]

    def test_leading_zeros_stay_in_number(self) -> None:
        token = lex("05")[0]
        assert token.type == TokenType.NUMBER
        assert token.value == "05"

    @pytest.mark.parametrize(
        "source,expected_type",
        [
            ("x", TokenType.WORD),
            ("eye_height", TokenType.WORD),
            ("T_his123", TokenType.WORD),
            ("42", TokenType.NUMBER),
            ("+", TokenType.SYMBOL),
            ("/", TokenType.SYMBOL),
        ],
    )
    def test_classification(self, source: str, expected_type: str) -> None:
        tokens = lex(source)
        assert len(tokens) == 1
        assert tokens[0].type == expected_type

    def test_lexer_output_verifies(self) -> None:
        verify_tokens(lex("Command foo a b {\n  Line a b (a + 5) -b\n}\nfoo 1 2"))


# ###############
# Token Verification
# ###############


class TestVerifyTokens:
    def test_good_tokens(self) -> None:
        verify_tokens([
            Token(TokenType.WORD, "x"),
            Token(TokenType.WORD, "T_his123213"),
            *(Token(TokenType.SYMBOL, s) for s in "{}[]-*/+?()"),
            Token(TokenType.NUMBER, "0"),
            Token(TokenType.NUMBER, "05"),
            Token(TokenType.NUMBER, "45245252342534563464564564324522420923413625412461342"),
        ])

    @pytest.mark.parametrize(
        "token_type,value",
        [
            (TokenType.WORD, "0"),
            (TokenType.WORD, "0thign"),
            (TokenType.WORD, "th ign"),
            (TokenType.WORD, "7"),
            (TokenType.SYMBOL, "{{"),
            (TokenType.SYMBOL, "a"),
            (TokenType.SYMBOL, " "),
            (TokenType.SYMBOL, "0"),
            (TokenType.SYMBOL, "{ "),
            (TokenType.SYMBOL, "{}"),
            (TokenType.SYMBOL, "{hi}"),
            (TokenType.SYMBOL, ","),
            (TokenType.NUMBER, "-5"),
            (TokenType.NUMBER, ""),
            (TokenType.NUMBER, "a"),
            (TokenType.NUMBER, "1e0"),
            (TokenType.NUMBER, "?"),
            (TokenType.NUMBER, "("),
            (TokenType.NUMBER, ","),
        ],
    )
    def test_bad_tokens(self, token_type: str, value: str) -> None:
        with pytest.raises(InternalError):
            verify_tokens([Token(token_type, value)])

    def test_unknown_type(self) -> None:
        with pytest.raises(InternalError, match="Unknown token type"):
            verify_tokens([Token("keyword", "Line")])

    def test_error_carries_token_location(self) -> None:
        with pytest.raises(InternalError) as exc_info:
            verify_tokens([Token(TokenType.WORD, "x", 1, 0, "x 5"), Token(TokenType.NUMBER, "5x", 1, 2, "x 5")])
        assert exc_info.value.location.column == 2
