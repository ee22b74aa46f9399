import sys

from shipit import main as main_mod


def test_main_entrypoint_no_args(monkeypatch, tmp_path):
    monkeypatch.setenv("OPENAI_API_KEY", "x")
    monkeypatch.setattr(sys, "argv", ["shipit", "-q"])
    # Outside a repository the run stops before any provider call
    monkeypatch.chdir(tmp_path)
    rc = main_mod.main()
    assert rc == 1


def test_main_entrypoint_version(monkeypatch):
    monkeypatch.setattr(sys, "argv", ["shipit", "--version"])
    assert main_mod.main() == 0
