import os
import sys
import unittest
from datetime import date, datetime


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from schemaview.render import (
    BADGE_NO_CLASS,
    BADGE_YES_CLASS,
    PLACEHOLDER,
    Display,
    format_currency,
    format_date,
    format_datetime,
    plain_text,
    render,
    render_cell,
)
from schemaview.schema import ColumnSchema, Option, SemanticType


class TestRender(unittest.TestCase):
    def test_empty_values_render_placeholder_for_every_type(self) -> None:
        for stype in SemanticType:
            for value in (None, ""):
                display = render(stype, value)
                self.assertEqual(display.kind, "placeholder", stype)
                self.assertEqual(display.text, PLACEHOLDER)

    def test_links(self) -> None:
        email = render("email", "a@b.com")
        self.assertEqual((email.kind, email.text, email.href), ("link", "a@b.com", "mailto:a@b.com"))
        phone = render("phone", "555-0100")
        self.assertEqual(phone.href, "tel:555-0100")
        url = render("url", "https://example.com")
        self.assertEqual(url.href, "https://example.com")
        self.assertTrue(url.external)
        self.assertFalse(email.external)

    def test_currency(self) -> None:
        self.assertEqual(render("currency", 1234.5, currency="USD").text, "$1,234.50")
        self.assertEqual(render("currency", "99", currency="EUR").text, "€99.00")
        self.assertEqual(format_currency(-5, "USD"), "-$5.00")
        self.assertEqual(format_currency(1500, "JPY"), "¥1,500")
        self.assertEqual(format_currency(10, "CHF"), "CHF 10.00")

    def test_percentage(self) -> None:
        self.assertEqual(render("percentage", 25).text, "25%")

    def test_dates(self) -> None:
        self.assertEqual(render("date", "2024-01-05").text, "Jan 05, 2024")
        self.assertEqual(render("datetime", "2024-01-05T15:07:00").text, "Jan 05, 2024 03:07 PM")
        self.assertEqual(format_date(date(2023, 12, 31)), "Dec 31, 2023")
        self.assertEqual(format_datetime(datetime(2023, 12, 31, 0, 5)), "Dec 31, 2023 12:05 AM")

    def test_boolean_badge(self) -> None:
        yes = render("boolean", True)
        no = render("boolean", False)
        self.assertEqual((yes.kind, yes.text, yes.css_class), ("badge", "Yes", BADGE_YES_CLASS))
        self.assertEqual((no.kind, no.text, no.css_class), ("badge", "No", BADGE_NO_CLASS))
        self.assertEqual(render("boolean", "false").text, "No")

    def test_select_uses_option_label_and_falls_back(self) -> None:
        options = (Option("new", "New Lead"), Option("won", "Won"))
        self.assertEqual(render("select", "new", options).text, "New Lead")
        self.assertEqual(render("select", "other", options).text, "other")
        self.assertEqual(render("select", ["new", "won"], options).text, "New Lead, Won")

    def test_textarea_keeps_line_breaks(self) -> None:
        display = render("textarea", "line one\nline two")
        self.assertEqual(display.kind, "multiline")
        self.assertEqual(display.text, "line one\nline two")

    def test_text_and_number_unchanged(self) -> None:
        self.assertEqual(render("text", "hello").text, "hello")
        self.assertEqual(render("number", 42).text, "42")

    def test_mismatched_values_degrade_to_raw(self) -> None:
        self.assertEqual(render("currency", "not money").text, "not money")
        self.assertEqual(render("date", "someday").text, "someday")
        self.assertEqual(render("datetime", {"x": 1}).kind, "text")
        self.assertEqual(render("no-such-type", "abc").text, "abc")

    def test_render_is_pure_and_idempotent(self) -> None:
        samples = [
            ("currency", 10.005),
            ("date", "2024-02-29"),
            ("boolean", 0),
            ("select", "x"),
            ("url", "ftp://odd"),
            ("textarea", "a\n\nb"),
        ]
        for ftype, value in samples:
            self.assertEqual(render(ftype, value), render(ftype, value))

    def test_render_cell_prefers_custom_renderer(self) -> None:
        col = ColumnSchema("name", "Name", renderer=lambda value, row: f"{value}!{row['id']}")
        self.assertEqual(render_cell(col, {"id": 7, "name": "Ada"}), "Ada!7")
        plain = ColumnSchema("amount", "Amount", type=SemanticType.CURRENCY)
        self.assertEqual(render_cell(plain, {"id": 1, "amount": 3}, "USD").text, "$3.00")

    def test_plain_text(self) -> None:
        self.assertEqual(plain_text(Display("placeholder", PLACEHOLDER)), "")
        self.assertEqual(plain_text(Display("link", "a@b.com", href="mailto:a@b.com")), "a@b.com")
        self.assertEqual(plain_text({"text": "x"}), "x")
        self.assertEqual(plain_text(None), "")


if __name__ == "__main__":
    unittest.main()
