from __future__ import annotations

from pathlib import Path
import copy
import sys

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from nanning.storage import (
    PRESET_THEMES,
    CorruptRecord,
    DatabaseManager,
    ThemeRepository,
    ValidationError,
)


@pytest.fixture()
def database(tmp_path: Path) -> DatabaseManager:
    manager = DatabaseManager(tmp_path / "nanning.db")
    manager.initialize()
    yield manager
    manager.close()


@pytest.fixture()
def theme_repo(database: DatabaseManager) -> ThemeRepository:
    return ThemeRepository(database)


def _theme(theme_id: str = "custom-1", **overrides) -> dict:
    theme = {
        "id": theme_id,
        "name": "Midnight",
        "mode": "dark",
        "gradient": {
            "angle": 90,
            "stops": [
                {"color": "#000000", "position": 0},
                {"color": "#112233", "position": 100},
            ],
        },
        "colors": {
            "primary": "#FF0000",
            "secondary": "#00FF00",
            "accent": "#0000FF",
            "background": "#101010",
            "foreground": "#FAFAFA",
            "muted": "#202020",
            "border": "#303030",
        },
        "glass": {"opacity": 0.2, "blur": 16, "border_opacity": 0.4},
    }
    theme.update(overrides)
    return theme


def test_save_and_get_round_trip(theme_repo: ThemeRepository) -> None:
    saved = theme_repo.save(_theme())
    fetched = theme_repo.get("custom-1")
    assert fetched == saved
    assert fetched["mode"] == "dark"
    assert fetched["is_preset"] is False
    assert fetched["gradient"] == {
        "angle": 90.0,
        "stops": [
            {"color": "#000000", "position": 0.0},
            {"color": "#112233", "position": 100.0},
        ],
    }
    assert fetched["colors"]["primary"] == "#ff0000"
    assert fetched["glass"] == {"opacity": 0.2, "blur": 16.0, "border_opacity": 0.4}


def test_save_accepts_stop_list_and_named_colours(theme_repo: ThemeRepository) -> None:
    theme = _theme(gradient=[{"color": "red", "position": 50}])
    theme["glass"] = {"opacity": 0.5, "blur": 4, "borderOpacity": 0.1}
    saved = theme_repo.save(theme)
    assert saved["gradient"]["angle"] == 135.0
    assert saved["gradient"]["stops"] == [{"color": "#ff0000", "position": 50.0}]
    assert saved["glass"]["border_opacity"] == 0.1


@pytest.mark.parametrize(
    "overrides",
    [
        {"id": ""},
        {"name": None},
        {"mode": "sepia"},
        {"gradient": {"stops": []}},
        {"gradient": {"stops": [{"color": "#000000", "position": 101}]}},
        {"gradient": {"stops": [{"color": "not-a-colour", "position": 10}]}},
        {"colors": {"primary": "#FFFFFF"}},
        {"glass": {"opacity": 1.5, "blur": 1, "border_opacity": 0.1}},
        {"gradient": {"stops": [{"color": "#000000", "position": 0}], "blendMode": "dodge"}},
        {"gradient": {"stops": [{"color": "#000000", "position": 0}], "intensity": 1.5}},
    ],
)
def test_save_rejects_invalid_payloads(theme_repo: ThemeRepository, overrides: dict) -> None:
    with pytest.raises(ValidationError):
        theme_repo.save(_theme(**overrides))
    assert theme_repo.list_all() == []


def test_save_upserts_existing_theme(theme_repo: ThemeRepository) -> None:
    first = theme_repo.save(_theme(name="Midnight"))
    second = theme_repo.save(_theme(name="Dawn", mode="light"))
    assert second["name"] == "Dawn"
    assert second["mode"] == "light"
    assert second["created_at"] == first["created_at"]
    assert second["updated_at"] > first["updated_at"]
    assert len(theme_repo.list_all()) == 1


def test_preset_can_be_overwritten_but_not_deleted(theme_repo: ThemeRepository) -> None:
    theme_repo.save(_theme("preset-night", is_preset=True))
    theme_repo.save(_theme("preset-night", name="Night v2"))

    fetched = theme_repo.get("preset-night")
    assert fetched["name"] == "Night v2"
    assert fetched["is_preset"] is True

    assert theme_repo.delete("preset-night") == 0
    assert theme_repo.get("preset-night") is not None


def test_delete_custom_theme(theme_repo: ThemeRepository) -> None:
    theme_repo.save(_theme())
    assert theme_repo.delete("custom-1") == 1
    assert theme_repo.get("custom-1") is None
    assert theme_repo.delete("custom-1") == 0


def test_list_orders_by_most_recent_update(theme_repo: ThemeRepository) -> None:
    theme_repo.save(_theme("a"))
    theme_repo.save(_theme("b"))
    theme_repo.save(_theme("a", name="Touched"))
    assert [theme["id"] for theme in theme_repo.list_all()] == ["a", "b"]


@pytest.mark.parametrize(
    ("column", "value"),
    [
        ("gradient", "{broken"),
        ("colors", '{"primary": "#fff"}'),
        ("glass", '"just a string"'),
    ],
)
def test_corrupt_structured_fields_raise(
    theme_repo: ThemeRepository, column: str, value: str
) -> None:
    theme_repo.save(_theme())
    with theme_repo.transaction() as connection:
        connection.execute(f"UPDATE themes SET {column} = ? WHERE id = ?", (value, "custom-1"))
    with pytest.raises(CorruptRecord):
        theme_repo.get("custom-1")
    with pytest.raises(CorruptRecord):
        theme_repo.list_all()


def test_seed_presets_is_idempotent_and_preserves_overrides(
    theme_repo: ThemeRepository,
) -> None:
    assert theme_repo.seed_presets(PRESET_THEMES) == len(PRESET_THEMES)

    override = copy.deepcopy(PRESET_THEMES[0])
    override["name"] = "My Pastel"
    theme_repo.save(override)

    assert theme_repo.seed_presets(PRESET_THEMES) == 0
    stored = theme_repo.get(PRESET_THEMES[0]["id"])
    assert stored["name"] == "My Pastel"
    assert stored["is_preset"] is True
    assert all(theme["is_preset"] for theme in theme_repo.list_all())


def test_round_trip_keeps_blend_settings_and_translucency(theme_repo: ThemeRepository) -> None:
    gradient = {
        "angle": 90,
        "stops": [{"color": "#80FF0000", "position": 0}],
        "blendMode": "overlay",
        "intensity": 0.5,
    }
    theme_repo.save(_theme(mode="auto", gradient=gradient))

    fetched = theme_repo.get("custom-1")
    assert fetched["mode"] == "auto"
    assert fetched["gradient"] == {
        "angle": 90.0,
        "stops": [{"color": "#80ff0000", "position": 0.0}],
        "blend_mode": "overlay",
        "intensity": 0.5,
    }
    assert fetched["colors"]["primary"] == "#ff0000"
