import pytest

from flat_object_storage.exceptions import ObjectValidationError
from flat_object_storage.paths import (
    MAX_OBJECT_ID_LENGTH,
    is_valid_key_path,
    is_valid_object_id,
    join_key_path,
    split_key_path,
    validate_key_path,
    validate_object_id,
)


class TestObjectId:
    @pytest.mark.parametrize("value", ["user:1", "a", "with space inside", "x" * MAX_OBJECT_ID_LENGTH])
    def test_valid(self, value):
        assert is_valid_object_id(value)

    @pytest.mark.parametrize(
        "value",
        ["", " lead", "trail ", "\tTab", "x" * (MAX_OBJECT_ID_LENGTH + 1), None, 42],
    )
    def test_invalid(self, value):
        assert not is_valid_object_id(value)

    def test_validate_returns_value(self):
        assert validate_object_id("doc") == "doc"

    def test_validate_raises(self):
        with pytest.raises(ObjectValidationError) as exc_info:
            validate_object_id(" doc")
        assert exc_info.value.field == "object_id"
        assert isinstance(exc_info.value, ValueError)


class TestKeyPath:
    @pytest.mark.parametrize("value", ["a", "a.b", "user.profile.name", "a b.c", "0.1"])
    def test_valid(self, value):
        assert is_valid_key_path(value)

    @pytest.mark.parametrize("value", ["", ".a", "a.", "a..b", " a", "a ", ".", None, 1])
    def test_invalid(self, value):
        assert not is_valid_key_path(value)

    def test_validate_raises(self):
        with pytest.raises(ObjectValidationError) as exc_info:
            validate_key_path("a..b")
        assert exc_info.value.field == "key_path"
        assert exc_info.value.details["field"] == "key_path"


class TestSplitJoin:
    def test_split(self):
        assert split_key_path("a.b.c") == ["a", "b", "c"]

    def test_join_with_prefix(self):
        assert join_key_path("a.b", "c") == "a.b.c"

    def test_join_top_level(self):
        assert join_key_path("", "c") == "c"
