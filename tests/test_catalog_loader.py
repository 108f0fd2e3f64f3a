import pytest

from catalog.catalog_loader import (
    DEFAULT_CUSTOMERS_PATH,
    DEFAULT_FINGERPRINTS_PATH,
    build_targets,
    load_customers,
    load_fingerprints,
    parse_fingerprint,
)
from core.errors import ConfigurationError
from models.scan import Customer, CustomerPage


def _write(tmp_path, name, content):
    path = tmp_path / name
    path.write_text(content)
    return str(path)


def test_default_catalog_loads():
    catalog = load_fingerprints(DEFAULT_FINGERPRINTS_PATH)
    assert "algolia" in catalog
    algolia = catalog["algolia"]
    assert "https://insights.algolia.io" in algolia.api_requests_urls
    assert algolia.scripts.tags[0].title == "Algolia search client"
    assert algolia.head_tags[0].rel == "preconnect"

    targets = build_targets(load_customers(DEFAULT_CUSTOMERS_PATH))
    assert targets[0].customer == "Everlane"


def test_catalog_is_read_only(tmp_path):
    path = _write(tmp_path, "fp.yaml", "fingerprints:\n  acme:\n    cookies: [acme_sid]\n")
    catalog = load_fingerprints(path)
    with pytest.raises(TypeError):
        catalog["other"] = catalog["acme"]


def test_shorthand_script_sources():
    fingerprint = parse_fingerprint("acme", {
        "scripts": {"src": ["cdn.acme.test/search.js"], "srcRegex": ["acme-search@[\\d.]+"]},
        "windowVariables": "acmeSearch",
    })
    tag = fingerprint.scripts.tags[0]
    assert tag.title == "scripts"
    assert tag.src == ("cdn.acme.test/search.js",)
    assert tag.src_regex == ("acme-search@[\\d.]+",)
    assert fingerprint.window_variables == ("acmeSearch",)
    assert fingerprint.populated_fields() == ("scripts", "window_variables")


def test_empty_definition_is_allowed():
    assert parse_fingerprint("nothing", None).is_empty()


def test_invalid_regex_is_rejected():
    with pytest.raises(ConfigurationError, match="Invalid regex"):
        parse_fingerprint("acme", {"scripts": {"tags": [{"title": "x", "srcRegex": ["acme("]}]}})


def test_head_tag_without_tag_name_is_rejected():
    with pytest.raises(ConfigurationError):
        parse_fingerprint("acme", {"headTags": [{"href": "acme.test"}]})


def test_duplicate_fingerprints_across_files(tmp_path):
    _write(tmp_path, "a.yaml", "fingerprints:\n  acme:\n    cookies: [a]\n")
    _write(tmp_path, "b.yml", "fingerprints:\n  acme:\n    cookies: [b]\n")
    _write(tmp_path, "notes.txt", "ignored")
    with pytest.raises(ConfigurationError, match="Duplicate"):
        load_fingerprints(str(tmp_path))


def test_invalid_yaml_is_a_configuration_error(tmp_path):
    path = _write(tmp_path, "fp.yaml", "fingerprints: [unclosed\n")
    with pytest.raises(ConfigurationError):
        load_fingerprints(path)


def test_missing_path_is_a_configuration_error(tmp_path):
    with pytest.raises(ConfigurationError):
        load_fingerprints(str(tmp_path / "missing.yaml"))


def test_customers_flatten_to_targets(tmp_path):
    path = _write(tmp_path, "customers.yaml", """
customers:
  - name: Acme Outdoors
    pages:
      - name: Homepage
        url: https://acme.test/
      - url: https://acme.test/search
  - name: Globex
    pages:
      - name: PLP
        url: https://globex.test/shoes
""")
    targets = build_targets(load_customers(path))

    assert [str(t) for t in targets] == [
        "Acme Outdoors - Homepage: https://acme.test/",
        "Acme Outdoors - https://acme.test/search: https://acme.test/search",
        "Globex - PLP: https://globex.test/shoes",
    ]


def test_customer_filter_is_case_insensitive_substring():
    customers = [
        Customer("Acme Outdoors", (CustomerPage("Homepage", "https://acme.test/"),)),
        Customer("Globex", (CustomerPage("Homepage", "https://globex.test/"),)),
    ]
    targets = build_targets(customers, "ACME")
    assert [t.customer for t in targets] == ["Acme Outdoors"]


def test_customer_filter_without_match_is_rejected():
    customers = [Customer("Globex", (CustomerPage("Homepage", "https://globex.test/"),))]
    with pytest.raises(ConfigurationError, match="No customer matches"):
        build_targets(customers, "acme")


def test_no_pages_is_rejected():
    with pytest.raises(ConfigurationError):
        build_targets([Customer("Globex")])
