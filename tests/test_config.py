import json

from omc.config import (
    Config,
    Context,
    config_from_dict,
    create_config_file,
    load_config,
    save_config,
)


def test_empty_config_omits_fields(tmp_path):
    path = tmp_path / "omc.json"
    create_config_file(path)
    assert json.loads(path.read_text()) == {}


def test_round_trip(tmp_path):
    path = tmp_path / "omc.json"
    cfg = Config(
        id="abc",
        contexts=[Context("abc", "/mg", "*", "default"), Context("x", "/o", "", "p")],
        use_local_crds=True,
        diff_command="diff",
    )
    save_config(cfg, path)
    assert load_config(path) == cfg


def test_current_context():
    cfg = config_from_dict(
        {"contexts": [{"id": "a", "path": "/a"}, {"id": "b", "path": "/b", "current": "*"}]}
    )
    assert cfg.current_context().id == "b"
    assert Config().current_context() is None


def test_missing_file_gives_empty(tmp_path):
    assert load_config(tmp_path / "none.json") == Config()


def test_context_keys():
    d = Context("i", "p", "*", "proj").to_dict()
    assert set(d) == {"id", "path", "current", "project"}