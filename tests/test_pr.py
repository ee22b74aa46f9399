import os
import subprocess
from types import SimpleNamespace

import pytest

from conftest import run_git
from shipit import pr as pr_mod
from shipit.exceptions import ProviderHTTPError, RetryError
from shipit.git import GitRepo
from shipit.pr import PrOutcome, compare_url, create_pull_request, open_pull_request
from shipit.schema import PullRequestDraft


class FakeLLM:
    def __init__(self, draft=None, error=None):
        self.draft = draft or PullRequestDraft(title="Add login", body="## Summary\n- login")
        self.error = error
        self.prompts = []

    def generate_pull_request(self, prompt):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.draft


@pytest.fixture
def feature_repo(remote_repo):
    run_git(["checkout", "-q", "-b", "feature/login"], remote_repo)
    (remote_repo / "login.py").write_text("def login():\n    pass\n")
    run_git(["add", "login.py"], remote_repo)
    run_git(["commit", "-q", "-m", "feat(auth): add login", "-m", "Adds a stub."], remote_repo)
    return remote_repo


@pytest.fixture
def gh_calls(monkeypatch):
    calls = []

    def fake_open(base, title, body, cwd=None):
        calls.append({"base": base, "title": title, "body": body, "cwd": cwd})
        return SimpleNamespace(
            stdout="https://github.com/acme/app/compare/main...feature/login\n",
            stderr="Opening github.com/acme/app/compare in your browser.\n",
            returncode=0,
        )

    monkeypatch.setattr(pr_mod, "open_pull_request", fake_open)
    return calls


@pytest.mark.parametrize(
    "remote",
    [
        "git@github.com:acme/app.git",
        "ssh://git@github.com/acme/app.git",
        "https://github.com/acme/app.git",
        "https://github.com/acme/app",
    ],
)
def test_compare_url(remote):
    assert compare_url(remote, "main", "feature/x") == (
        "https://github.com/acme/app/compare/main...feature/x"
    )


def test_open_pull_request_uses_temp_body_file(monkeypatch):
    seen = {}

    def fake_run(cmd, cwd=None, capture_output=False, text=False, check=False):
        body_path = cmd[cmd.index("--body-file") + 1]
        with open(body_path, encoding="utf-8") as fh:
            seen["body"] = fh.read()
        seen["cmd"] = cmd
        seen["path"] = body_path
        return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

    monkeypatch.setattr(subprocess, "run", fake_run)

    open_pull_request("main", "Add login", "## Body")

    assert seen["body"] == "## Body"
    assert seen["cmd"][:3] == ["gh", "pr", "create"]
    assert "--web" in seen["cmd"]
    assert seen["cmd"][seen["cmd"].index("--title") + 1] == "Add login"
    assert not os.path.exists(seen["path"])


def test_pr_opened_for_pushed_branch(feature_repo, console, gh_calls):
    run_git(["push", "-q", "-u", "origin", "feature/login"], feature_repo)
    llm = FakeLLM()

    outcome = create_pull_request(GitRepo(str(feature_repo)), llm, console)

    assert outcome is PrOutcome.OPENED
    assert gh_calls[0]["base"] == "main"
    assert gh_calls[0]["title"] == "Add login"
    assert "feat(auth): add login" in llm.prompts[0]
    messages = [m for m, _ in console.confirms]
    assert messages == ["Want me to cook up a PR for 1 commit?", "Ship it to GitHub?"]
    assert "https://github.com/acme/app/compare/main...feature/login" in console.text()


def test_unpushed_branch_is_pushed_first(feature_repo, console, gh_calls):
    outcome = create_pull_request(
        GitRepo(str(feature_repo)), FakeLLM(), console, auto_confirm=True
    )

    assert outcome is PrOutcome.OPENED
    assert console.confirms[0] == ("Push 1 unpushed commit to origin/feature/login?", True)
    head = run_git(["rev-parse", "HEAD"], feature_repo)
    assert run_git(["rev-parse", "origin/feature/login"], feature_repo) == head


def test_template_is_passed_to_prompt(feature_repo, console, gh_calls):
    (feature_repo / ".github").mkdir()
    (feature_repo / ".github" / "pull_request_template.md").write_text("## What\n## Why\n")
    run_git(["add", ".github"], feature_repo)
    run_git(["commit", "-q", "-m", "chore: add PR template"], feature_repo)
    llm = FakeLLM()

    create_pull_request(GitRepo(str(feature_repo)), llm, console, auto_confirm=True)

    assert "## What\n## Why" in llm.prompts[0]


def test_on_base_branch(remote_repo, console, gh_calls):
    outcome = create_pull_request(GitRepo(str(remote_repo)), FakeLLM(), console)

    assert outcome is PrOutcome.ON_BASE
    assert gh_calls == []


def test_no_remote(repo, console):
    assert create_pull_request(GitRepo(str(repo)), FakeLLM(), console) is PrOutcome.NO_REMOTE


def test_nothing_ahead(remote_repo, console):
    run_git(["checkout", "-q", "-b", "empty"], remote_repo)

    outcome = create_pull_request(GitRepo(str(remote_repo)), FakeLLM(), console)

    assert outcome is PrOutcome.NOTHING_AHEAD


def test_declined_offer_makes_no_llm_call(feature_repo, make_console):
    console = make_console(answers=[False])
    llm = FakeLLM()

    outcome = create_pull_request(GitRepo(str(feature_repo)), llm, console)

    assert outcome is PrOutcome.DECLINED
    assert llm.prompts == []


def test_declined_push_aborts_pr(feature_repo, make_console):
    console = make_console(answers=[True, False])
    llm = FakeLLM()

    outcome = create_pull_request(GitRepo(str(feature_repo)), llm, console)

    assert outcome is PrOutcome.DECLINED
    assert llm.prompts == []


def test_provider_failure_is_reported(feature_repo, console, gh_calls):
    run_git(["push", "-q", "-u", "origin", "feature/login"], feature_repo)
    error = RetryError("failed", last_error=ProviderHTTPError("slow", 429), attempts=3)

    outcome = create_pull_request(
        GitRepo(str(feature_repo)), FakeLLM(error=error), console, auto_confirm=True
    )

    assert outcome is PrOutcome.FAILED
    assert gh_calls == []
    assert "Rate limit hit (429)" in console.text()


def test_missing_gh_falls_back_to_compare_url(feature_repo, console, monkeypatch):
    run_git(["push", "-q", "-u", "origin", "feature/login"], feature_repo)
    run_git(["config", "remote.origin.url", "git@github.com:acme/app.git"], feature_repo)

    def missing_gh(*args, **kwargs):
        raise FileNotFoundError("gh")

    monkeypatch.setattr(pr_mod, "open_pull_request", missing_gh)

    outcome = create_pull_request(
        GitRepo(str(feature_repo)), FakeLLM(), console, auto_confirm=True
    )

    assert outcome is PrOutcome.OPEN_FAILED
    assert "https://github.com/acme/app/compare/main...feature/login" in console.text()
