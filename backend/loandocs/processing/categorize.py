"""Filename-based document type guess for uploaded files."""

from __future__ import annotations

# First matching rule wins, so order matters ("tax return" before "return").
CATEGORY_RULES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("paystub", "pay_stub", "paycheck"), "Paystub"),
    (("w2", "w-2"), "W-2"),
    (("1099",), "1099"),
    (("bank", "statement"), "Bank Statement"),
    (("tax", "return"), "Tax Return"),
    (("appraisal",), "Appraisal"),
    (("title",), "Title"),
    (("credit",), "Credit Report"),
    (("1003", "application"), "Loan Application"),
)

DEFAULT_CATEGORY = "Other Document"


def categorize_document(filename: str) -> str:
    lower = filename.lower()
    for keywords, category in CATEGORY_RULES:
        if any(keyword in lower for keyword in keywords):
            return category
    return DEFAULT_CATEGORY
