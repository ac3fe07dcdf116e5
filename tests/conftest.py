import pytest

from windows_features.index.feature_index import build_feature_index
from windows_features.index.metadata import invalidate_index_cache


@pytest.fixture(autouse=True)
def isolated_cache(tmp_path, monkeypatch):
    """Use an isolated metadata cache for each test and start with no cached index."""
    cache_dir = tmp_path / "windows_features_cache"
    monkeypatch.setenv("WINDOWS_FEATURES_CACHE_DIR", str(cache_dir))
    invalidate_index_cache()
    yield cache_dir
    invalidate_index_cache()


@pytest.fixture()
def sample_document():
    """Small document with two populated namespaces and one empty one."""
    return {
        "namespace_map": ["Root.Sub.Foundation", "Root.Sub.Display", "Root.Sub.Empty"],
        "feature_map": ["F_Foundation", "F_Display", "F_Other", "F_Extra", "F_Unused"],
        "namespaces": {
            "0": [
                {"name": "LUID", "features": [0]},
                {"name": "HANDLE", "features": [0, 3]},
            ],
            "1": [
                {"name": "A", "features": [1]},
                {"name": "B", "features": [1, 0]},
                {"name": "C", "features": [2]},
            ],
        },
    }


@pytest.fixture()
def sample_index(sample_document):
    return build_feature_index(sample_document)
