import pytest

from core.detector import CompetitorDetector  # noqa: F401 registers every extractor
from core.extractor_registry import ExtractorRegistry
from models.detection import MatchCategory


def test_every_fingerprint_field_has_an_extractor():
    assert set(ExtractorRegistry.get_all_fields()) == {
        "scripts", "window_variables", "classes_list", "data_attributes",
        "api_requests_urls", "cookies", "head_tags",
    }


@pytest.mark.parametrize("field,category", [
    ("scripts", MatchCategory.SCRIPT),
    ("api_requests_urls", MatchCategory.API_REQUEST),
    ("head_tags", MatchCategory.HEAD_TAG),
])
def test_categories(field, category):
    assert ExtractorRegistry.get_category(field) == category


def test_instantiate_all_with_exclusions():
    instances = ExtractorRegistry.instantiate_all(exclude={"scripts", "cookies"})
    assert "scripts" not in instances
    assert "cookies" not in instances
    assert len(instances) == 5


def test_register_rejects_unknown_field():
    with pytest.raises(ValueError):
        ExtractorRegistry.register("local_storage", MatchCategory.COOKIE)
