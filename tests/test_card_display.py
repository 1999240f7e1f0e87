from __future__ import annotations

from types import SimpleNamespace

from nexus_cards.services import card_display
from nexus_cards.services.card_service import CardService
from nexus_cards.services.component_service import ComponentService


def test_vcard_escapes_and_links_back(make_user, make_card):
    card = make_card(make_user(), company="Analytical Engines; Ltd", job_title="Mathematician", bio="Line one\nLine two")
    text = card_display.card_vcard(card)
    lines = text.split("\r\n")

    assert lines[:4] == ["BEGIN:VCARD", "VERSION:3.0", "N:Lovelace;Ada;;;", "FN:Ada Lovelace"]
    assert "ORG:Analytical Engines\\; Ltd" in lines
    assert "NOTE:Line one\\nLine two" in lines
    assert "URL:https://cards.test/p/ada-lovelace" in lines
    assert text.endswith("END:VCARD\r\n")


def test_contacts_vcard_is_empty_for_no_contacts():
    assert card_display.contacts_vcard([]) == ""


def test_qr_png_is_a_png():
    assert card_display.qr_png("https://cards.test/p/ada").startswith(b"\x89PNG\r\n\x1a\n")
    assert card_display.qr_data_url("x").startswith("data:image/png;base64,")


def test_theme_variables_pick_readable_text():
    dark = SimpleNamespace(
        theme={"primaryColor": "111111"},
        background_color="#000000",
        font_size="xl",
        border_radius="rounded-full",
        shadow_preset="lg",
        font_family=None,
    )
    variables = card_display.theme_variables(dark)
    assert variables["--accent"] == "#111111"
    assert variables["--accent-contrast"] == "#F9FAFB"
    assert variables["--text"] == "#F9FAFB"
    assert variables["--font-scale"] == "1.2"
    assert variables["--radius"] == "9999px"
    assert "--font-family" not in variables


def test_render_context_drops_invalid_css(make_user, make_card):
    user = make_user("PREMIUM")
    card = make_card(user, social_links={"github": "github.com/ada"})
    card.custom_css = "body { background: url(javascript:alert(1)) }"
    component = ComponentService().create(card.id, user.id, {"type": "ABOUT", "config": {"text": "Hi"}})

    ctx = card_display.build_render_context(card, [component], nfc_uid="04AA")
    assert ctx["name"] == "Ada Lovelace"
    assert ctx["avatar"] == card_display.DEFAULT_AVATAR
    assert ctx["custom_css"] == ""
    assert ctx["components"][0]["config"] == {"text": "Hi"}
    assert ctx["social_links"] == [{"platform": "github", "url": "https://github.com/ada"}]
    assert ctx["vcard_url"] == "/p/ada-lovelace.vcf"
    assert ctx["nfc_uid"] == "04AA"


def test_background_image_must_be_a_plain_url():
    card = SimpleNamespace(background_type="image", background_image="https://img.test/a.jpg", background_color=None, theme={})
    assert card_display.background_style(card).startswith("background-image:url('https://img.test/a.jpg')")

    card.background_image = "https://img.test/a.jpg');}body{color:red"
    assert card_display.background_style(card) == "background-color:#FFFFFF"
    card.background_image = "javascript:alert(1)"
    assert card_display.background_style(card) == "background-color:#FFFFFF"


def test_component_style_drops_values_outside_the_css_grammar():
    component = SimpleNamespace(
        background_type="gradient",
        background_gradient_start="#FF0000",
        background_gradient_end="rgba(0, 0, 0, .5)",
        background_image_url=None,
        background_color=None,
    )
    assert card_display.component_style(component) == "background:linear-gradient(135deg,#FF0000,rgba(0, 0, 0, .5))"

    component.background_type = "solid"
    component.background_color = "red;}</style><script>"
    assert card_display.component_style(component) == ""
    component.background_color = "teal"
    assert card_display.component_style(component) == "background-color:teal"


def test_font_family_is_validated():
    card = SimpleNamespace(
        theme={}, background_color=None, font_size=None, border_radius=None, shadow_preset=None,
        font_family='"Inter", sans-serif',
    )
    assert card_display.theme_variables(card)["--font-family"] == '"Inter", sans-serif'
    card.font_family = "Inter;}body{display:none"
    assert "--font-family" not in card_display.theme_variables(card)


def test_paid_styling_renders_unescaped(client, make_user, make_card):
    user = make_user("PREMIUM")
    card = make_card(user)
    svc = CardService()
    svc.update_styling(
        card.id,
        user.id,
        {"background_type": "image", "background_image": "https://img.test/a.jpg", "font_family": '"Inter", sans-serif'},
    )
    svc.update_custom_css(card.id, user.id, '.card > h1 { font-family: "Inter", sans-serif; }')

    page = client.get(f"/p/{card.slug}").text
    assert "background-image:url('https://img.test/a.jpg')" in page
    assert '--font-family:"Inter", sans-serif' in page
    assert '<style id="custom-css">.card > h1 { font-family: "Inter", sans-serif; }</style>' in page
    assert "&#39;" not in page.split("</style>")[0]
