"""Tests für das einseitige Vektor-Layout."""

from dataclasses import replace

import pytest
from reportlab.lib.pagesizes import A4

from invoice_generator import (
    LayoutConfig,
    LayoutError,
    PageGeometry,
    RectCommand,
    TextAlign,
    TextCommand,
    VectorLayoutEngine,
)
from tests.helpers import make_invoice, pdf_pages, pdf_text


@pytest.fixture
def engine():
    return VectorLayoutEngine()


def _texts(layout):
    return [cmd.text for cmd in layout.commands if isinstance(cmd, TextCommand)]


def test_content_block_is_centred_on_page(engine):
    assert engine.content_width == pytest.approx(140)
    assert engine.left == pytest.approx(35)
    assert engine.right == pytest.approx(175)


def test_narrow_page_uses_content_ratio():
    engine = VectorLayoutEngine(PageGeometry(width_mm=150, height_mm=200))
    assert engine.content_width == pytest.approx(105)
    assert engine.left == pytest.approx(22.5)


def test_layout_is_deterministic(engine):
    invoice = make_invoice(item_count=3, notes="Thanks", terms="Net 30")
    first = engine.layout_invoice(invoice)
    second = VectorLayoutEngine().layout_invoice(invoice)
    assert first.commands == second.commands
    assert first.blocks == second.blocks


def test_render_is_byte_identical(engine):
    invoice = make_invoice(item_count=2, tax="10")
    assert engine.render(invoice) == engine.render(invoice)


def test_short_invoice_is_vertically_centred(engine):
    layout = engine.layout_invoice(make_invoice())

    # 20 + 10 + 18 + 10 + (2 * 6 + 14) + 8 + 6 + 10 + 14 + 8 + 14
    assert layout.content_height == pytest.approx(144)
    assert layout.content_height < engine.min_fill_height
    assert layout.top_offset == pytest.approx((297 - 297 * 0.75) / 2)
    assert layout.top_offset > LayoutConfig().min_margin


def test_long_invoice_starts_at_min_margin(engine):
    layout = engine.layout_invoice(make_invoice(item_count=40))
    assert layout.content_height >= engine.min_fill_height
    assert layout.top_offset == LayoutConfig().min_margin


def test_consumed_height_matches_content_height(engine):
    invoice = make_invoice(item_count=5, discount="5", tax="7", notes="N " * 200, terms="Net 30")
    layout = engine.layout_invoice(invoice)
    assert layout.consumed_height == pytest.approx(layout.content_height)


def test_title_drawn_at_top_offset(engine):
    layout = engine.layout_invoice(make_invoice())
    title = layout.commands[0]
    assert title.text == "INVOICE"
    assert title.align is TextAlign.CENTER
    assert title.x == pytest.approx(105)
    assert title.y == pytest.approx(layout.top_offset)


def test_cursor_is_monotonic(engine):
    layout = engine.layout_invoice(make_invoice(item_count=4, notes="Thanks"))
    row_ys = [cmd.y for cmd in layout.commands if isinstance(cmd, TextCommand) and cmd.x == engine.desc_x]
    assert row_ys == sorted(row_ys)


def test_zero_discount_and_tax_are_omitted(engine):
    layout = engine.layout_invoice(make_invoice(discount="0", tax="0"))
    assert "discount" not in layout.blocks
    assert "tax" not in layout.blocks
    assert not any(text.startswith(("Discount", "Tax")) for text in _texts(layout))


def test_positive_discount_and_tax_add_one_line_each(engine):
    base = engine.layout_invoice(make_invoice())
    both = engine.layout_invoice(make_invoice(discount="5", tax="7.5"))

    assert both.blocks.count("discount") == 1
    assert both.blocks.count("tax") == 1
    assert both.content_height - base.content_height == pytest.approx(2 * 8)
    assert "Discount: $ 5.00" in _texts(both)
    assert "Tax: $ 7.50" in _texts(both)


def test_totals_are_rendered_as_given(engine):
    invoice = make_invoice(item_count=2)
    invoice = replace(invoice, total=invoice.total + 1)
    texts = _texts(engine.layout_invoice(invoice))
    assert "Subtotal: $ 200.00" in texts
    assert "Total: $ 201.00" in texts


def test_notes_and_terms_only_when_present(engine):
    layout = engine.layout_invoice(make_invoice())
    assert "notes_gap" not in layout.blocks

    layout = engine.layout_invoice(make_invoice(terms="Net 30"))
    assert "notes" not in layout.blocks
    assert layout.blocks[-3:] == ("notes_gap", "terms_heading", "terms")
    assert "Terms & Conditions:" in _texts(layout)


def test_whitespace_notes_are_omitted(engine):
    layout = engine.layout_invoice(make_invoice(notes="   \n "))
    assert "notes" not in layout.blocks


def test_notes_wrap_and_advance_one_line_each(engine):
    notes = "Please reference the invoice number with your payment. " * 10
    base = engine.layout_invoice(make_invoice())
    layout = engine.layout_invoice(make_invoice(notes=notes))

    heading = next(c for c in layout.commands if isinstance(c, TextCommand) and c.text == "Notes:")
    body = [
        c for c in layout.commands
        if isinstance(c, TextCommand) and c.y > heading.y and c.x == engine.left
    ]
    assert len(body) > 1
    steps = {round(b.y - a.y, 6) for a, b in zip(body, body[1:])}
    assert steps == {6.0}
    assert layout.content_height - base.content_height == pytest.approx(12 + 8 + len(body) * 6 + 4)


def test_party_block_sized_by_longer_side(engine):
    invoice = make_invoice()
    layout = engine.layout_invoice(invoice)
    from_x = engine.left
    to_x = engine.recipient_x
    from_lines = [c for c in layout.commands if isinstance(c, TextCommand) and c.x == from_x and c.size == 12]
    to_lines = [c for c in layout.commands if isinstance(c, TextCommand) and c.x == to_x and c.size == 12]
    assert [c.text for c in to_lines] == ["Example Corp"]
    assert [c.text for c in from_lines] == ["Acme Studio", "billing@acme.example"]


def test_table_header_has_fill_and_columns(engine):
    layout = engine.layout_invoice(make_invoice())
    fill = next(c for c in layout.commands if isinstance(c, RectCommand))
    assert fill.width == pytest.approx(engine.content_width)
    header = {c.text: c for c in layout.commands if isinstance(c, TextCommand) and abs(c.y - (fill.y + 6)) < 1e-9}
    assert header["Qty"].align is TextAlign.CENTER
    assert header["Qty"].x == pytest.approx(35 + 140 * 0.62)
    assert header["Rate"].align is TextAlign.RIGHT
    assert header["Amount"].x == pytest.approx(35 + 140 * 0.90)


def test_long_description_is_shortened(engine):
    invoice = make_invoice()
    original = invoice.items[0]
    item = replace(original, description="Extremely long description " * 6)
    texts = _texts(engine.layout_invoice(replace(invoice, items=(item,))))
    assert any(t.startswith("Extremely long") and t.endswith("...") for t in texts)
    assert "2" in texts


def test_many_items_still_render_one_a4_page(engine):
    data = engine.render(make_invoice(item_count=40))
    pages = pdf_pages(data)
    assert len(pages) == 1
    assert pages[0].width == pytest.approx(A4[0], abs=0.5)
    assert pages[0].height == pytest.approx(A4[1], abs=0.5)


def test_unreadable_amount_raises_layout_error(engine):
    invoice = make_invoice()
    bad = replace(invoice, total="n/a")
    with pytest.raises(LayoutError):
        engine.layout_invoice(bad)
    with pytest.raises(LayoutError):
        engine.render(bad)


def test_unencodable_currency_symbol_falls_back_to_code(engine):
    text = pdf_text(engine.render(make_invoice(currency="INR")))

    assert "Subtotal: INR 100.00" in text
    assert "Total: INR 100.00" in text
    assert "I 100.00" not in text


def test_encodable_currency_symbol_is_rendered(engine):
    text = pdf_text(engine.render(make_invoice(currency="EUR")))
    assert "Total: € 100.00" in text
