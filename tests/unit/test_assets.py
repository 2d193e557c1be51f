from greenform_pipeline.presentation.assets import resolve_asset_url

BASE = "https://boms.example.pk"


def test_strips_public_prefix_and_appends_key():
    url = resolve_asset_url("public/uploads/cnic/1.jpg", base_url=BASE, key="k1")
    assert url == f"{BASE}/uploads/cnic/1.jpg?key=k1"


def test_without_key_or_path():
    assert resolve_asset_url("uploads/a.png", base_url=BASE + "/") == f"{BASE}/uploads/a.png"
    assert resolve_asset_url(None, base_url=BASE) is None
    assert resolve_asset_url("", base_url=BASE) is None


def test_absolute_urls_pass_through():
    assert resolve_asset_url("https://cdn.example/x.jpg", base_url=BASE, key="k") == "https://cdn.example/x.jpg"
