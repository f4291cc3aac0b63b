"""Tests for the template catalog and loader."""

import json

import pytest

from hyperflow.catalog import get_catalog, load_catalog, load_templates_from_path
from hyperflow.config import CatalogConfig, HyperflowConfig
from hyperflow.errors import TemplateDefinitionError, TemplateNotFoundError


def test_builtin_catalog_loads_every_kind(builtin_catalog):
    kinds = {t.kind for t in builtin_catalog.values()}
    assert kinds == {"guided", "chat", "content", "automation"}
    assert "context-setup-wizard" in builtin_catalog
    assert builtin_catalog["hacker-news-top"].variable("count").default == 10


def test_list_templates_filters(builtin_catalog):
    automation = builtin_catalog.list_templates(kind="automation")
    assert automation and all(t.kind == "automation" for t in automation)
    research = builtin_catalog.list_templates(kind="automation", category="research")
    assert {t.id for t in research} == {"company-website-scrape", "google-search"}


def test_unknown_template_raises(builtin_catalog):
    with pytest.raises(TemplateNotFoundError) as excinfo:
        builtin_catalog["nope"]
    assert str(excinfo.value) == "Template not found: nope"
    assert builtin_catalog.get("nope") is None


def test_find_by_trigger(builtin_catalog):
    found = builtin_catalog.find_by_trigger("start [WORKFLOW:USER_ONBOARDING] please")
    assert found is not None and found.id == "user-onboarding"
    assert builtin_catalog.find_by_trigger("just chatting") is None


def test_load_extra_templates_from_directory(tmp_path):
    (tmp_path / "one.yaml").write_text(
        """
id: custom-report
name: Custom Report
kind: content
body: Summarise {{topic}}
"""
    )
    (tmp_path / "two.json").write_text(
        json.dumps(
            {
                "templates": [
                    {"id": "custom-chat", "name": "Chat", "kind": "chat", "body": "x", "trigger": "[T]"}
                ]
            }
        )
    )
    (tmp_path / "notes.txt").write_text("ignored")

    catalog = load_catalog([tmp_path], include_builtin=False)
    assert sorted(catalog) == ["custom-chat", "custom-report"]


def test_duplicate_ids_across_files_rejected(tmp_path):
    for name in ("a.yaml", "b.yaml"):
        (tmp_path / name).write_text("id: dup\nname: Dup\nkind: content\nbody: x\n")
    with pytest.raises(TemplateDefinitionError):
        load_catalog([tmp_path], include_builtin=False)


def test_invalid_template_is_a_load_error(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("id: bad\nname: Bad\nkind: guided\nsteps: []\n")
    with pytest.raises(TemplateDefinitionError) as excinfo:
        load_templates_from_path(path)
    assert "bad" in str(excinfo.value)


def test_missing_path_is_a_load_error(tmp_path):
    with pytest.raises(TemplateDefinitionError):
        load_templates_from_path(tmp_path / "missing")


def test_get_catalog_uses_config(tmp_path):
    (tmp_path / "extra.yaml").write_text("id: extra\nname: Extra\nkind: content\nbody: x\n")
    config = HyperflowConfig(catalog=CatalogConfig(include_builtin=False, paths=[str(tmp_path)]))

    catalog = get_catalog(config)
    assert list(catalog) == ["extra"]
    assert get_catalog() is catalog


def test_catalog_is_read_only(builtin_catalog):
    with pytest.raises(TypeError):
        builtin_catalog["x"] = builtin_catalog["faq"]
