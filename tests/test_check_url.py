import json

from check_url import main
from conftest import page


def test_usage_without_arguments(capsys):
    assert main([]) == 1
    assert "Usage" in capsys.readouterr().out


def test_saved_page(tmp_path, capsys, tea_page):
    path = tmp_path / "tea.html"
    path.write_text(tea_page)

    assert main([str(path)]) == 0
    assert json.loads(capsys.readouterr().out)["name"] == "Tea"


def test_saved_page_without_recipe(tmp_path, capsys):
    path = tmp_path / "blog.html"
    path.write_text(page({"@type": "WebSite"}))

    assert main([str(path)]) == 1
    assert "No recipe found" in capsys.readouterr().err


def test_missing_file(tmp_path, capsys):
    assert main([str(tmp_path / "missing.html")]) == 1
    assert "File not found" in capsys.readouterr().err


def test_url_outside_allowlist_is_rejected_without_fetching(capsys):
    assert main(["https://randomblog.com/recipe"]) == 1
    assert "not supported yet" in json.loads(capsys.readouterr().out)["error"]
