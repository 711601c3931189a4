from versenest_auth.models.domain import ReaderUser, Role, WriterUser
from versenest_auth.services import redirect
from versenest_auth.services.payloads import (
    build_login_payload,
    build_registration_payload,
    display_name,
    sanitize_input,
)


def test_resolve_routes():
    assert redirect.resolve("writer") == "/writer/home"
    assert redirect.resolve("reader") == "/reader/home"
    assert redirect.resolve(Role.WRITER) == "/writer/home"
    assert redirect.resolve("") == "/"
    assert redirect.resolve(None) == "/"
    assert redirect.resolve("admin") == "/"


def test_login_payload_lowercases_email():
    payload = build_login_payload({"email": "  Ada@VerseNest.IO ", "password": "Pw"}, "reader")
    assert payload == {"email": "ada@versenest.io", "password": "Pw", "role": "reader"}


def test_registration_payload_keeps_only_role_fields():
    form = {
        "name": " Ada <b>King</b> ",
        "email": "ADA@versenest.io",
        "password": "Quatrain9",
        "confirmPassword": "Quatrain9",
        "acceptTerms": True,
        "penName": "Countess",
        "bio": "Numbers and verse",
        "genres": ["epic", "epic", "ode"],
    }
    payload = build_registration_payload(form, Role.WRITER)
    assert payload["email"] == "ada@versenest.io"
    assert payload["name"] == "Ada bKing/b"
    assert payload["genres"] == ["epic", "ode"]
    assert "confirmPassword" not in payload
    assert "acceptTerms" not in payload
    assert "preferredGenres" not in payload

    reader = build_registration_payload({"email": "a@b.io", "password": "p", "name": "Ann"}, "reader")
    assert reader["preferredGenres"] == []
    assert reader["moodPreferences"] == []
    assert "penName" not in reader


def test_sanitize_input_caps_length():
    assert sanitize_input("x" * 600) == "x" * 500
    assert sanitize_input(["a"]) == ["a"]


def test_display_name_preference_order():
    writer = WriterUser(id="1", email="poet@versenest.io", name="Mary Oliver", pen_name="M.O.")
    assert display_name(writer) == "M.O."
    assert display_name(writer.model_copy(update={"pen_name": None})) == "Mary Oliver"
    reader = ReaderUser(id="2", email="quiet@versenest.io", name="")
    assert display_name(reader) == "quiet"
    assert display_name(None) == "Guest"
