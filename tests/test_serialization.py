import math

import pytest

from fedlinreg.models.model_zoo import ModelParams
from fedlinreg.utils.exceptions import MalformedRecordError, ResourceUnavailableError
from fedlinreg.utils.serialization import read_parameters, write_parameters


def test_write_then_read_preserves_values(tmp_path):
    path = str(tmp_path / "client_0_params.txt")
    params = ModelParams(weight=12.345678901234567, bias=-0.1, mean=3.3333333333333335, std_dev=1e-7)

    write_parameters(path, params)

    with open(path, encoding="utf-8") as f:
        lines = f.read().splitlines()
    assert len(lines) == 1
    assert len(lines[0].split()) == 4
    assert read_parameters(path) == params


def test_write_creates_parent_dirs(tmp_path):
    path = str(tmp_path / "nested" / "dir" / "p.txt")
    write_parameters(path, ModelParams.unnormalized(1.0, 2.0))
    assert read_parameters(path) == ModelParams(1.0, 2.0, 0.0, 1.0)


def test_nan_fields_survive(tmp_path):
    path = str(tmp_path / "p.txt")
    write_parameters(path, ModelParams(float("nan"), 1.0, 2.0, 3.0))
    loaded = read_parameters(path)
    assert math.isnan(loaded.weight)
    assert loaded.std_dev == 3.0


def test_extra_tokens_are_ignored(tmp_path):
    path = tmp_path / "p.txt"
    path.write_text("1 2 3 4 5 6\n", encoding="utf-8")
    assert read_parameters(str(path)) == ModelParams(1.0, 2.0, 3.0, 4.0)


def test_missing_record(tmp_path):
    with pytest.raises(ResourceUnavailableError):
        read_parameters(str(tmp_path / "absent.txt"))


@pytest.mark.parametrize("content", ["", "1 2 3", "1 2 three 4"])
def test_malformed_record(tmp_path, content):
    path = tmp_path / "p.txt"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(MalformedRecordError) as excinfo:
        read_parameters(str(path))
    assert excinfo.value.path == str(path)
