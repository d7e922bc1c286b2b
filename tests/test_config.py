"""
Tests for configuration file handling.
"""
import json

from spquery import config


class TestExpandConfigSection:
    cfg = {
        "default": {"spquery_url": "https://a"},
        "team_a": {"spquery_url": "https://team-a"},
        "team_b": {"spquery_url": "https://team-b"},
        "old": {"spquery_url": "https://old", "disable": True},
        "teams": {"contains": ["team_a", "team_b", "teams"]},
        "everything": {"contains": ["default", "teams"]},
    }

    def test_plain(self):
        assert config.expand_config_section(self.cfg, "default") == ["default"]

    def test_missing(self):
        assert config.expand_config_section(self.cfg, "nope") == []

    def test_disabled(self):
        assert config.expand_config_section(self.cfg, "old") == []

    def test_meta_section(self):
        assert config.expand_config_section(self.cfg, "teams") == ["team_a", "team_b"]

    def test_recursive_meta_section(self):
        assert config.expand_config_section(self.cfg, "everything") == [
            "default",
            "team_a",
            "team_b",
        ]

    def test_glob(self):
        assert config.expand_config_section(self.cfg, "team_*") == ["team_a", "team_b"]

    def test_star(self):
        assert "old" not in config.expand_config_section(self.cfg, "*")


class TestConfigSection:
    def test_inherits(self):
        cfg = {
            "default": {"spquery_url": "https://a", "spquery_username": "me"},
            "other": {"inherits": "default", "spquery_url": "https://b"},
        }
        section = config.config_section(cfg, "other")
        assert section["spquery_url"] == "https://b"
        assert section["spquery_username"] == "me"

    def test_missing(self):
        assert config.config_section({}, "default") == {}

    def test_connection_params(self):
        section = {"spquery_url": "https://a", "spquery_password": "", "inherits": "x", "other": 1}
        assert config.connection_params(section) == {"url": "https://a"}


class TestReadConfig:
    def test_json(self, tmp_path):
        fn = tmp_path / "spquery.json"
        fn.write_text(json.dumps({"default": {"spquery_url": "https://a"}}))
        assert config.read_config(str(fn)) == {"default": {"spquery_url": "https://a"}}

    def test_yaml(self, tmp_path):
        fn = tmp_path / "spquery.yaml"
        fn.write_text("default:\n  spquery_url: https://a\n")
        assert config.read_config(str(fn)) == {"default": {"spquery_url": "https://a"}}

    def test_missing_file(self, tmp_path):
        assert config.read_config(str(tmp_path / "nope.json")) == {}

    def test_broken_file(self, tmp_path):
        fn = tmp_path / "broken.conf"
        fn.write_text("default: [unclosed\n")
        assert config.read_config(str(fn)) == {}

    def test_default_locations(self, tmp_path, monkeypatch):
        monkeypatch.setenv("HOME", str(tmp_path))
        (tmp_path / ".config" / "spquery").mkdir(parents=True)
        (tmp_path / ".config" / "spquery" / "spquery.json").write_text(
            json.dumps({"default": {"spquery_url": "https://a"}})
        )
        assert config.read_config(None) == {"default": {"spquery_url": "https://a"}}
