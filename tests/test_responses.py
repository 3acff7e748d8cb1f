import pytest

from reql.responses import write_response


def test_write_response_normalizes_counters() -> None:
    result = write_response({"inserted": 2.0, "errors": 0.0, "generated_keys": ["a", "b"]})
    assert result["inserted"] == 2
    assert isinstance(result["inserted"], int)
    assert result["deleted"] == 0
    assert result["generated_keys"] == ["a", "b"]


def test_write_response_keeps_first_error() -> None:
    result = write_response({"errors": 1.0, "first_error": "Duplicate primary key"})
    assert result["errors"] == 1
    assert result["first_error"] == "Duplicate primary key"


def test_write_response_rejects_bad_shapes() -> None:
    with pytest.raises(TypeError):
        write_response([1])
    with pytest.raises(TypeError):
        write_response({"inserted": "two"})
    with pytest.raises(TypeError):
        write_response({"inserted": True})
    with pytest.raises(TypeError):
        write_response({"generated_keys": "a"})
