"""Persisted colour themes with protected presets."""

from __future__ import annotations

import json
import logging
import math
import sqlite3
from collections.abc import Mapping
from enum import Enum
from typing import Any, Iterable

from PyQt6.QtGui import QColor

from .database import BaseRepository, utc_timestamp
from .errors import CorruptRecord, StorageError, ValidationError

logger = logging.getLogger(__name__)

COLOR_ROLES = ("primary", "secondary", "accent", "background", "foreground", "muted", "border")
DEFAULT_GRADIENT_ANGLE = 135.0
BLEND_MODES = ("normal", "multiply", "screen", "overlay")


class ThemeMode(str, Enum):
    LIGHT = "light"
    DARK = "dark"
    AUTO = "auto"


def _normalize_color(value: Any, *, error: type[StorageError], field: str) -> str:
    """Return ``value`` as ``#rrggbb``, or ``#aarrggbb`` when translucent.

    Raises ``error`` for anything QColor cannot parse.
    """

    candidate = QColor(value) if isinstance(value, str) else QColor()
    if not candidate.isValid():
        raise error(f"Invalid colour for {field}: {value!r}")
    if candidate.alpha() < 255:
        return candidate.name(QColor.NameFormat.HexArgb)
    return candidate.name()


def _number(
    value: Any,
    *,
    low: float,
    high: float,
    error: type[StorageError],
    field: str,
) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise error(f"{field} must be a number")
    number = float(value)
    if not math.isfinite(number) or number < low or number > high:
        raise error(f"{field} must be between {low:g} and {high:g}")
    return number


def normalize_gradient(value: Any, *, error: type[StorageError] = ValidationError) -> dict[str, Any]:
    """Validate a gradient and return it with normalised colours.

    Accepts either a mapping with ``angle`` and ``stops`` or a bare list of
    stops, which gets the default angle. The optional ``blend_mode``
    (also read as ``blendMode``) and ``intensity`` are kept when present.
    """

    if isinstance(value, (list, tuple)):
        value = {"stops": list(value)}
    if not isinstance(value, Mapping):
        raise error("Gradient must be a mapping with colour stops")
    angle = value.get("angle", DEFAULT_GRADIENT_ANGLE)
    stops = value.get("stops")
    if not isinstance(stops, (list, tuple)) or not stops:
        raise error("Gradient requires at least one colour stop")
    normalized_stops: list[dict[str, Any]] = []
    for index, stop in enumerate(stops):
        if not isinstance(stop, Mapping):
            raise error(f"Gradient stop {index} must be a mapping")
        normalized_stops.append(
            {
                "color": _normalize_color(
                    stop.get("color"), error=error, field=f"gradient stop {index}"
                ),
                "position": _number(
                    stop.get("position"),
                    low=0,
                    high=100,
                    error=error,
                    field=f"gradient stop {index} position",
                ),
            }
        )
    gradient: dict[str, Any] = {
        "angle": _number(angle, low=0, high=360, error=error, field="gradient angle"),
        "stops": normalized_stops,
    }
    blend_mode = value.get("blend_mode", value.get("blendMode"))
    if blend_mode is not None:
        if blend_mode not in BLEND_MODES:
            raise error(f"Unknown gradient blend mode {blend_mode!r}")
        gradient["blend_mode"] = blend_mode
    intensity = value.get("intensity")
    if intensity is not None:
        gradient["intensity"] = _number(
            intensity, low=0, high=1, error=error, field="gradient intensity"
        )
    return gradient


def normalize_colors(value: Any, *, error: type[StorageError] = ValidationError) -> dict[str, str]:
    if not isinstance(value, Mapping):
        raise error("Colours must be a mapping of palette roles")
    missing = [role for role in COLOR_ROLES if role not in value]
    if missing:
        raise error("Colour palette is missing roles: " + ", ".join(missing))
    return {
        role: _normalize_color(value[role], error=error, field=f"colour {role}")
        for role in COLOR_ROLES
    }


def normalize_glass(value: Any, *, error: type[StorageError] = ValidationError) -> dict[str, float]:
    if not isinstance(value, Mapping):
        raise error("Glass parameters must be a mapping")
    border = value.get("border_opacity", value.get("borderOpacity"))
    return {
        "opacity": _number(value.get("opacity"), low=0, high=1, error=error, field="glass opacity"),
        "blur": _number(value.get("blur"), low=0, high=math.inf, error=error, field="glass blur"),
        "border_opacity": _number(
            border, low=0, high=1, error=error, field="glass border opacity"
        ),
    }


def _coerce_mode(value: Any) -> str:
    try:
        return ThemeMode(value).value
    except ValueError as exc:
        raise ValidationError(f"Unknown theme mode {value!r}") from exc


class ThemeRepository(BaseRepository):
    """Upsert, read, and delete themes; presets cannot be deleted."""

    def save(self, theme: Mapping[str, Any]) -> dict[str, Any]:
        theme = self._require_mapping(theme, "Theme")
        theme_id = theme.get("id")
        name = theme.get("name")
        if not isinstance(theme_id, str) or not theme_id.strip():
            raise ValidationError("Theme id is required")
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Theme name is required")
        mode = _coerce_mode(theme.get("mode") or ThemeMode.LIGHT)
        gradient_json = json.dumps(normalize_gradient(theme.get("gradient")))
        colors_json = json.dumps(normalize_colors(theme.get("colors")))
        glass_json = json.dumps(normalize_glass(theme.get("glass")))
        is_preset = int(bool(theme.get("is_preset", False)))

        with self.transaction() as connection:
            current = connection.execute(
                "SELECT updated_at, is_preset FROM themes WHERE id = ?",
                (theme_id,),
            ).fetchone()
            if current is None:
                now = utc_timestamp()
                connection.execute(
                    """
                    INSERT INTO themes (
                        id, name, mode, gradient, colors, glass, is_preset,
                        created_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        theme_id,
                        name,
                        mode,
                        gradient_json,
                        colors_json,
                        glass_json,
                        is_preset,
                        now,
                        now,
                    ),
                )
            else:
                # An existing preset keeps its flag; saving never makes it deletable.
                connection.execute(
                    """
                    UPDATE themes
                    SET name = ?, mode = ?, gradient = ?, colors = ?, glass = ?,
                        is_preset = MAX(is_preset, ?), updated_at = ?
                    WHERE id = ?
                    """,
                    (
                        name,
                        mode,
                        gradient_json,
                        colors_json,
                        glass_json,
                        is_preset,
                        utc_timestamp(after=current["updated_at"]),
                        theme_id,
                    ),
                )
            row = connection.execute(
                "SELECT * FROM themes WHERE id = ?", (theme_id,)
            ).fetchone()
        logger.info(
            "Saved theme",
            extra={"theme_id": theme_id, "created": current is None},
        )
        return self._decode_theme_row(row)  # type: ignore[return-value]

    def seed_presets(self, presets: Iterable[Mapping[str, Any]]) -> int:
        """Insert built-in themes that are not stored yet.

        Existing rows are left untouched so user overrides of a preset
        survive restarts.
        """

        inserted = 0
        with self.transaction() as connection:
            for preset in presets:
                now = utc_timestamp()
                cursor = connection.execute(
                    """
                    INSERT OR IGNORE INTO themes (
                        id, name, mode, gradient, colors, glass, is_preset,
                        created_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, 1, ?, ?)
                    """,
                    (
                        preset["id"],
                        preset["name"],
                        _coerce_mode(preset["mode"]),
                        json.dumps(normalize_gradient(preset["gradient"])),
                        json.dumps(normalize_colors(preset["colors"])),
                        json.dumps(normalize_glass(preset["glass"])),
                        now,
                        now,
                    ),
                )
                inserted += max(cursor.rowcount, 0)
        if inserted:
            logger.info("Seeded preset themes", extra={"count": inserted})
        return inserted

    def get(self, theme_id: str) -> dict[str, Any] | None:
        row = self._fetchone("SELECT * FROM themes WHERE id = ?", (theme_id,))
        return self._decode_theme_row(row)

    def list_all(self) -> list[dict[str, Any]]:
        rows = self._fetchall("SELECT * FROM themes ORDER BY updated_at DESC")
        return [self._decode_theme_row(row) for row in rows]  # type: ignore[misc]

    def delete(self, theme_id: str) -> int:
        """Delete a non-preset theme and return the number of rows removed.

        Presets are refused silently: the result is ``0`` and the row stays.
        """

        with self.transaction() as connection:
            cursor = connection.execute(
                "DELETE FROM themes WHERE id = ? AND is_preset = 0",
                (theme_id,),
            )
            affected = max(cursor.rowcount, 0)
        if affected:
            logger.info("Deleted theme", extra={"theme_id": theme_id})
        else:
            logger.info("Theme delete had no effect", extra={"theme_id": theme_id})
        return affected

    @staticmethod
    def _decode_theme_row(row: sqlite3.Row | None) -> dict[str, Any] | None:
        if row is None:
            return None
        record = {key: row[key] for key in row.keys()}
        theme_id = record.get("id")
        decoders = {
            "gradient": normalize_gradient,
            "colors": normalize_colors,
            "glass": normalize_glass,
        }
        for key, decoder in decoders.items():
            try:
                raw = json.loads(record[key])
            except (TypeError, ValueError) as exc:
                raise CorruptRecord(f"Theme {theme_id!r} has undecodable {key}") from exc
            try:
                record[key] = decoder(raw, error=CorruptRecord)
            except CorruptRecord as exc:
                raise CorruptRecord(f"Theme {theme_id!r} has corrupt {key}: {exc}") from exc
        record["is_preset"] = bool(record.get("is_preset"))
        return record


__all__ = [
    "COLOR_ROLES",
    "ThemeMode",
    "ThemeRepository",
    "normalize_colors",
    "normalize_glass",
    "normalize_gradient",
]
