import pytest

from languages import LANGUAGES, get_language


def test_get_language():
    lang = get_language("de")
    assert lang.api == "https://de.wikipedia.org/w/api.php"


def test_chinese_variants_share_one_host():
    assert get_language("zh-cn").api == get_language("zh-tw").api
    assert get_language("zh-cn").id != get_language("zh-tw").id


def test_unknown_language():
    with pytest.raises(ValueError):
        get_language("xx")


def test_every_language_points_at_the_action_api():
    assert all(lang.api.endswith("/w/api.php") for lang in LANGUAGES.values())
