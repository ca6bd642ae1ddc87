"""Unit tests for submission code generation"""

import pytest

from labintake.domain.submissions.codes import (
    CODE_ALPHABET,
    generate_code,
    generate_unique_code,
    is_valid_code,
)
from labintake.domain.submissions.errors import CodeGenerationError


class TestGenerateCode:
    def test_default_length_is_four(self):
        code = generate_code()
        assert len(code) == 4
        assert all(c in CODE_ALPHABET for c in code)

    def test_custom_length(self):
        assert len(generate_code(8)) == 8

    def test_zero_length_rejected(self):
        with pytest.raises(ValueError):
            generate_code(0)

    def test_alphabet_is_mixed_case_alphanumeric(self):
        assert "a" in CODE_ALPHABET and "Z" in CODE_ALPHABET and "7" in CODE_ALPHABET
        assert len(CODE_ALPHABET) == 62


class TestIsValidCode:
    @pytest.mark.parametrize("code", ["aB3x", "0000", "ZZZZ"])
    def test_valid(self, code):
        assert is_valid_code(code)

    @pytest.mark.parametrize("code", [None, "", "abc", "abcde", "ab-c", "ab c"])
    def test_invalid(self, code):
        assert not is_valid_code(code)


class TestGenerateUniqueCode:
    """Uniqueness against a backing store"""

    @pytest.mark.asyncio
    async def test_ten_thousand_codes_without_collision(self):
        """10,000 codes issued against the store are all distinct"""
        issued = set()

        async def is_taken(code):
            return code in issued

        for _ in range(10_000):
            code = await generate_unique_code(is_taken, length=4, max_attempts=50)
            assert code not in issued
            issued.add(code)

        assert len(issued) == 10_000

    @pytest.mark.asyncio
    async def test_forced_collision_triggers_regeneration(self):
        candidates = iter(["AAAA", "AAAA", "BBBB"])
        checked = []

        async def is_taken(code):
            checked.append(code)
            return code == "AAAA"

        code = await generate_unique_code(is_taken, generator=lambda length: next(candidates))

        assert code == "BBBB"
        assert checked == ["AAAA", "AAAA", "BBBB"]

    @pytest.mark.asyncio
    async def test_exhausted_budget_raises(self):
        async def is_taken(code):
            return True

        with pytest.raises(CodeGenerationError):
            await generate_unique_code(is_taken, max_attempts=3)
