from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Language:
    id: str  # also sent as the variant code
    name: str
    api: str


def _api(host: str) -> str:
    return f"https://{host}.wikipedia.org/w/api.php"


LANGUAGES: dict[str, Language] = {
    lang.id: lang
    for lang in (
        Language("en", "English", _api("en")),
        Language("de", "Deutsch", _api("de")),
        Language("fr", "Français", _api("fr")),
        Language("es", "Español", _api("es")),
        Language("it", "Italiano", _api("it")),
        Language("ja", "日本語", _api("ja")),
        Language("ru", "Русский", _api("ru")),
        Language("zh-cn", "中文（简体）", _api("zh")),
        Language("zh-tw", "中文（繁體）", _api("zh")),
    )
}


def get_language(lang_id: str) -> Language:
    try:
        return LANGUAGES[lang_id]
    except KeyError:
        raise ValueError(f"Unknown language: {lang_id!r}") from None
