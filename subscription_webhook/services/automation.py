from __future__ import annotations

UNKNOWN_AUTOMATION = "unknown"

# Ordered: the first substring found in the product title wins.
AUTOMATION_RULES: tuple[tuple[str, str], ...] = (
    ("calendar", "calendar_agent"),
    ("rebeq", "rebeq"),
    ("vera", "vera"),
)


def identify_automation(product_title: str) -> str:
    lower = (product_title or "").lower()
    for needle, slug in AUTOMATION_RULES:
        if needle in lower:
            return slug
    return UNKNOWN_AUTOMATION
