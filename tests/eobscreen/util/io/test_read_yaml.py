import pytest

from eobscreen.errors import ConfigError
from eobscreen.util.io.read_yaml import read_yaml, _normalize_types

class TestNormalizeTypes:
    def test_scientific_notation_strings(self):
        # pyyaml leaves "1e-3" as a string
        assert _normalize_types("1e-3") == 1e-3
        assert isinstance(_normalize_types("1e-3"), float)
        assert _normalize_types("1.5e1") == 15.0
        assert _normalize_types("-2E2") == -200.0

    def test_recursion(self):
        data = {
            "a": "1e2",
            "b": [10.0, "5.5", "2e1"],
            "c": {"d": "3e-1"}
        }
        expected = {
            "a": 100.0,
            "b": [10.0, "5.5", 20.0],
            "c": {"d": 0.3}
        }
        assert _normalize_types(data) == expected

    def test_other_types_remain(self):
        data = ["string", True, None, 5, "scale-to-max"]
        assert _normalize_types(data) == ["string", True, None, 5, "scale-to-max"]

class TestReadYaml:
    def test_read_dict_is_copied(self):
        data = {"a": 10.0}
        out = read_yaml(data)
        assert out == data
        assert out is not data

    def test_read_file(self, tmp_path):
        cf = tmp_path / "settings.yaml"
        cf.write_text("seed: 5\nchain_timeout: null\nlr: 1e-3\nparallel: false\n")

        config = read_yaml(str(cf))
        assert config == {"seed": 5,
                          "chain_timeout": None,
                          "lr": 1e-3,
                          "parallel": False}

    def test_empty_file(self, tmp_path):
        cf = tmp_path / "empty.yaml"
        cf.write_text("")
        assert read_yaml(str(cf)) == {}

    def test_override_keys(self):
        config = read_yaml({"a": 1, "b": 2}, override_keys={"b": 3})
        assert config == {"a": 1, "b": 3}

        with pytest.raises(ConfigError, match="not in configuration"):
            read_yaml({"a": 1}, override_keys={"z": 3})

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            read_yaml(str(tmp_path / "nope.yaml"))

    def test_bad_yaml(self, tmp_path):
        cf = tmp_path / "bad.yaml"
        cf.write_text("a: [1, 2\n")
        with pytest.raises(ConfigError, match="Error parsing"):
            read_yaml(str(cf))

    def test_not_a_mapping(self, tmp_path):
        cf = tmp_path / "list.yaml"
        cf.write_text("- 1\n- 2\n")
        with pytest.raises(ConfigError, match="mapping"):
            read_yaml(str(cf))
