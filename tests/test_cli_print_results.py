import json

from src.inbox_clusters.cli import load_messages, main, print_results
from src.inbox_clusters.models import CategorizationResult
from src.inbox_clusters.templates import DEFAULT_TEMPLATES


def test_print_results_groups_by_template_order(capsys) -> None:
    """Ensure CLI output groups by cluster and shows sender addresses."""

    results = [
        CategorizationResult(
            message_id="m2",
            subject="Your Credit Card Statement is Ready",
            sender="Bank <statements@bank.com>",
            category="Financial & Bills",
            score=5,
        ),
        CategorizationResult(
            message_id="m1",
            subject="Hello",
            sender="x@y.z",
            category="Work Communications",
            score=0,
            fallback=True,
        ),
    ]

    print_results(results, DEFAULT_TEMPLATES, verbose=True)

    captured = capsys.readouterr().out
    assert captured.index("Work Communications (1 emails)") < captured.index(
        "Financial & Bills (1 emails)"
    )
    assert "statements@bank.com Your Credit Card Statement is Ready [score 5]" in captured
    assert "x@y.z Hello [default]" in captured
    assert "Shopping & Services" not in captured
    assert "1 emails matched no template" in captured


def test_print_results_empty(capsys) -> None:
    """No results prints a short notice."""

    print_results([], DEFAULT_TEMPLATES)

    assert "No emails categorized." in capsys.readouterr().out


def test_load_messages_accepts_wrapped_object(tmp_path) -> None:
    """Message files may wrap the list in a messages key."""

    path = tmp_path / "messages.json"
    path.write_text(json.dumps({"messages": [{"id": "a", "subject": "Hi"}]}), encoding="utf-8")

    messages = load_messages(path)

    assert [m.id for m in messages] == ["a"]


def test_main_categorizes_input_file(tmp_path, capsys) -> None:
    """main() categorizes messages from a JSON file and exits 0."""

    path = tmp_path / "messages.json"
    path.write_text(
        json.dumps(
            [
                {"id": "a", "subject": "Your Amazon order has shipped", "sender": "ship@amazon.com"},
                {"id": "b", "subject": "Hello", "sender": "x@y.z"},
            ]
        ),
        encoding="utf-8",
    )

    assert main(["--input", str(path), "--log-level", "WARNING"]) == 0

    out = capsys.readouterr().out
    assert "Shopping & Services (1 emails)" in out
    assert "Work Communications (1 emails)" in out


def test_main_demo(capsys) -> None:
    """main() with --demo clusters the sample mailbox."""

    assert main(["--demo", "--log-level", "WARNING"]) == 0

    assert "CLUSTERS: 11 emails" in capsys.readouterr().out


def test_main_list_templates(capsys) -> None:
    """main() with --list-templates prints the table, default first."""

    assert main(["--list-templates", "--log-level", "WARNING"]) == 0

    out = capsys.readouterr().out
    assert "Work Communications (default)" in out


def test_main_bad_template_file_exits_1(tmp_path, capsys) -> None:
    """An invalid template file is reported as an error."""

    path = tmp_path / "templates.json"
    path.write_text("[]", encoding="utf-8")

    assert main(["--demo", "--templates", str(path), "--log-level", "ERROR"]) == 1

    assert "Error" in capsys.readouterr().out


def test_main_invalid_environment_exits_1(monkeypatch, capsys) -> None:
    """A bad settings value is reported instead of raising."""

    monkeypatch.setenv("SYNC_LIMIT", "0")

    assert main(["--demo", "--log-level", "ERROR"]) == 1

    assert "Error" in capsys.readouterr().out
