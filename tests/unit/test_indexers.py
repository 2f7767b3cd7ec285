# tests/unit/test_indexers.py
import pytest

from crm_shared.config import Settings
from crm_shared.exceptions import ConfigurationError
from crm_shared.utils.paths import get_path, split_path
from tenant_settings.domain.value_objects.indexer_descriptor import IndexerDescriptor
from tenant_settings.indexers import DEFAULT_INDEXERS, IndexerTable, settings_key


def test_get_path_never_raises_on_shape_mismatch():
    data = {"a": {"b": {"c": "x"}, "list": [1]}}
    assert get_path(data, ("a", "b", "c")) == "x"
    assert get_path(data, ("a", "missing", "c")) is None
    assert get_path(data, ("a", "b", "c", "d")) is None
    assert get_path(data, ("a", "list", "0")) is None
    assert get_path(None, ("a",)) is None


def test_split_path_rejects_blank_segments():
    assert split_path("a.b") == ("a", "b")
    with pytest.raises(ValueError):
        split_path("a..b")


def test_extract_token():
    descriptor = DEFAULT_INDEXERS[0]
    assert descriptor.extract_token({"meta_integrations": {"whatsapp": {"phoneNumberId": 1555}}}) == "1555"
    assert descriptor.extract_token({"meta_integrations": {"whatsapp": {"phoneNumberId": ""}}}) is None
    assert descriptor.extract_token({"meta_integrations": {}}) is None
    with pytest.raises(ValueError):
        descriptor.extract_token({"meta_integrations": {"whatsapp": {"phoneNumberId": ["1", "2"]}}})


def test_descriptor_validation():
    with pytest.raises(ValueError):
        IndexerDescriptor(platform_name="", token_path=("a",), cache_key_prefix="p")
    with pytest.raises(ValueError):
        IndexerDescriptor(platform_name="x", token_path=(), cache_key_prefix="p")


def test_default_table():
    table = IndexerTable.from_settings(Settings())
    assert table.platforms == ["whatsapp", "messenger", "instagram"]
    assert table.get("messenger").cache_key("42") == "msnPageId:42"
    assert table.get("messenger").field_path == "meta_integrations.messenger.pageId"
    assert settings_key("t1") == "settings:t1"


def test_table_from_config():
    table = IndexerTable.from_settings(
        Settings(tenant_indexers=({"platform": "telegram", "path": ["channels", "telegram", "botId"], "prefix": "tg"},))
    )
    assert len(table) == 1
    assert table.get("telegram").token_path == ("channels", "telegram", "botId")


def test_table_rejects_bad_config():
    with pytest.raises(ConfigurationError):
        IndexerTable(list(DEFAULT_INDEXERS) + [DEFAULT_INDEXERS[0]])
    with pytest.raises(ConfigurationError):
        IndexerTable.from_config([{"platform": "x", "path": "a..b", "prefix": "p"}])


def test_partition_splits_results():
    from crm_shared.domain.result import Failure, Success, partition

    ok, failed = partition({"a": Success("k"), "b": Failure("down"), "c": Success(None)})
    assert ok == {"a": "k", "c": None}
    assert failed == {"b": "down"}
    with pytest.raises(ValueError):
        Failure("down").unwrap()
