import pytest

from tutor_portal.services import id_types, normalization
from tutor_portal.services.errors import (
    AppError,
    FirebaseCredentialsError,
    GoogleOAuthError,
    InvalidDriveFolderIdError,
    InvalidStudentIdError,
    StudentNotFoundError,
    create_error_response,
    handle_unknown_error,
)


def test_canon_subject_folds_case_and_separators():
    assert normalization.canon_subject("Wiskunde-A") == "wiskunde-a"
    assert normalization.canon_subject("wiskunde_b") == "wiskunde-b"
    assert normalization.canon_subject("Math") == "wiskunde"


def test_canon_level_accepts_both_word_orders():
    assert normalization.canon_level("3 HAVO") == "havo-3"
    assert normalization.canon_level("havo3") == "havo-3"
    assert normalization.canon_level("VWO 5") == "vwo-5"
    assert normalization.canon_level("vmbo tl 4") == "vmbo-tl-4"


def test_canon_topic_maps_synonyms_and_slugifies_unknowns():
    assert normalization.canon_topic("Logaritme") == "logaritmen"
    assert normalization.canon_topic("differentiëren") == "afgeleiden"
    assert normalization.canon_topic("Unknown Topic!") == "unknown-topic"


def test_slugify_strips_accents_and_punctuation():
    assert normalization.slugify("Économie & Recht") == "economie-recht"
    assert normalization.slugify("  --Natuur  kunde-- ") == "natuur-kunde"
    assert normalization.slugify("") == ""


def test_parse_natural_language_extracts_level_subject_and_topic():
    parsed = normalization.parse_natural_language("wiskunde havo 4 logaritme")

    assert parsed == {"level": "havo-4", "subject": "wiskunde", "topic": "logaritmen"}


def test_parse_natural_language_leaves_out_missing_parts():
    assert normalization.parse_natural_language("wispunten 3 havo breuken") == {
        "level": "havo-3",
        "topic": "wispunten",
    }
    assert normalization.parse_natural_language("") == {}


def test_generate_tags_only_includes_present_fields():
    assert normalization.generate_tags("Wiskunde B", "5 vwo", "integreren") == [
        {"key": "subject", "value": "wiskunde-b"},
        {"key": "level", "value": "vwo-5"},
        {"key": "topic", "value": "integralen"},
    ]
    assert normalization.generate_tags("", None, "breuken") == [{"key": "topic", "value": "breuken"}]


def test_detect_id_type_distinguishes_firestore_and_drive_ids():
    assert id_types.detect_id_type("a" * 20) == id_types.ID_TYPE_FIRESTORE
    assert id_types.detect_id_type("1AbCdEfGhIjKlMnOpQrStUvWxYz012345") == id_types.ID_TYPE_DRIVE


def test_detect_id_type_rejects_short_or_malformed_ids():
    with pytest.raises(InvalidStudentIdError) as excinfo:
        id_types.detect_id_type("short")
    assert excinfo.value.code == "INVALID_STUDENT_ID"

    with pytest.raises(InvalidStudentIdError):
        id_types.detect_id_type("abc-def-ghi-jkl-mnop")


def test_validators_raise_typed_errors():
    assert id_types.validate_firestore_student_id("b" * 20) == "b" * 20
    with pytest.raises(InvalidStudentIdError) as excinfo:
        id_types.validate_firestore_student_id("x" * 25)
    assert "20 alphanumeric" in excinfo.value.suggestions[0]

    with pytest.raises(InvalidDriveFolderIdError):
        id_types.validate_drive_folder_id("tooshort")


def test_handle_unknown_error_classifies_known_messages():
    assert isinstance(handle_unknown_error(RuntimeError("invalid_grant: Token has been expired")), GoogleOAuthError)
    assert isinstance(
        handle_unknown_error(RuntimeError("Could not load the default credentials")),
        FirebaseCredentialsError,
    )
    assert isinstance(handle_unknown_error(RuntimeError("Project not found: demo")), FirebaseCredentialsError)

    generic = handle_unknown_error(ValueError("boom"))
    assert type(generic) is AppError
    assert generic.code == "UNKNOWN_ERROR"


def test_handle_unknown_error_passes_app_errors_through():
    error = StudentNotFoundError("s1")

    assert handle_unknown_error(error) is error


def test_create_error_response_shape():
    payload = create_error_response(InvalidDriveFolderIdError("abc"))

    assert payload["success"] is False
    assert payload["error"] == "INVALID_DRIVE_FOLDER_ID"
    assert "abc" in payload["message"]
    assert payload["suggestions"]
    assert payload["documentationUrl"].startswith("https://developers.google.com/")
