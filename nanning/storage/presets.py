"""Built-in themes seeded into every new store."""

from __future__ import annotations

from typing import Any

PRESET_THEMES: list[dict[str, Any]] = [
    {
        "id": "preset-pastel",
        "name": "Pastel",
        "mode": "light",
        "gradient": {
            "angle": 135,
            "stops": [
                {"color": "#FFE5E5", "position": 0},
                {"color": "#FFD6E8", "position": 25},
                {"color": "#E8DAFF", "position": 50},
                {"color": "#D6F0FF", "position": 75},
                {"color": "#E5FFE5", "position": 100},
            ],
        },
        "colors": {
            "primary": "#FF69B4",
            "secondary": "#9370DB",
            "accent": "#87CEEB",
            "background": "#FFFFFF",
            "foreground": "#333333",
            "muted": "#F5F5F5",
            "border": "#E0E0E0",
        },
        "glass": {"opacity": 0.25, "blur": 12, "border_opacity": 0.3},
    },
    {
        "id": "preset-cool",
        "name": "Cool",
        "mode": "dark",
        "gradient": {
            "angle": 45,
            "stops": [
                {"color": "#667EEA", "position": 0},
                {"color": "#764BA2", "position": 50},
                {"color": "#F093FB", "position": 100},
            ],
        },
        "colors": {
            "primary": "#667EEA",
            "secondary": "#F093FB",
            "accent": "#764BA2",
            "background": "#1A1A2E",
            "foreground": "#EAEAEA",
            "muted": "#16213E",
            "border": "#2E3A59",
        },
        "glass": {"opacity": 0.15, "blur": 20, "border_opacity": 0.2},
    },
    {
        "id": "preset-collection",
        "name": "Collection",
        "mode": "light",
        "gradient": {
            "angle": 180,
            "stops": [
                {"color": "#FFD700", "position": 0},
                {"color": "#FFA500", "position": 50},
                {"color": "#FF6347", "position": 100},
            ],
        },
        "colors": {
            "primary": "#FFD700",
            "secondary": "#FFA500",
            "accent": "#FF6347",
            "background": "#FFFAF0",
            "foreground": "#2F4F4F",
            "muted": "#FFF8DC",
            "border": "#F0E68C",
        },
        "glass": {"opacity": 0.25, "blur": 15, "border_opacity": 0.35},
    },
    {
        "id": "preset-ocean",
        "name": "Ocean",
        "mode": "light",
        "gradient": {
            "angle": 160,
            "stops": [
                {"color": "#43E97B", "position": 0},
                {"color": "#38F9D7", "position": 50},
                {"color": "#4FACFE", "position": 100},
            ],
        },
        "colors": {
            "primary": "#4FACFE",
            "secondary": "#43E97B",
            "accent": "#38F9D7",
            "background": "#F0FFFF",
            "foreground": "#1E3A5F",
            "muted": "#E0F7FA",
            "border": "#B2EBF2",
        },
        "glass": {"opacity": 0.2, "blur": 12, "border_opacity": 0.3},
    },
    {
        "id": "preset-sunset",
        "name": "Sunset",
        "mode": "light",
        "gradient": {
            "angle": 225,
            "stops": [
                {"color": "#FA709A", "position": 0},
                {"color": "#FEE140", "position": 50},
                {"color": "#FA709A", "position": 100},
            ],
        },
        "colors": {
            "primary": "#FA709A",
            "secondary": "#FEE140",
            "accent": "#FF6B6B",
            "background": "#FFF5F5",
            "foreground": "#4A4A4A",
            "muted": "#FFE5E5",
            "border": "#FFB3B3",
        },
        "glass": {"opacity": 0.25, "blur": 14, "border_opacity": 0.3},
    },
    {
        "id": "preset-aurora",
        "name": "Aurora",
        "mode": "dark",
        "gradient": {
            "angle": 0,
            "stops": [
                {"color": "#00F260", "position": 0},
                {"color": "#0575E6", "position": 33},
                {"color": "#FF00E6", "position": 66},
                {"color": "#00F260", "position": 100},
            ],
        },
        "colors": {
            "primary": "#00F260",
            "secondary": "#0575E6",
            "accent": "#FF00E6",
            "background": "#0A0E27",
            "foreground": "#E8F4F8",
            "muted": "#1A1E3A",
            "border": "#2A2E4A",
        },
        "glass": {"opacity": 0.15, "blur": 18, "border_opacity": 0.2},
    },
]


__all__ = ["PRESET_THEMES"]
