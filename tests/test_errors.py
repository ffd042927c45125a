from sqlalchemy.exc import OperationalError

from paperscope.errors import ErrorKind, PaperScopeError, from_db_error


def db_error(code, message):
    return OperationalError("CALL something()", {}, Exception(code, message))


def test_signal_from_trigger_keeps_its_message():
    error = from_db_error(db_error(1644, "Authors cannot review their own paper"))
    assert error.kind == ErrorKind.VALIDATION
    assert error.status_code == 400
    assert error.message == "Authors cannot review their own paper"


def test_duplicate_key_is_conflict():
    error = from_db_error(db_error(1062, "Duplicate entry 'P001' for key 'PRIMARY'"))
    assert error.kind == ErrorKind.CONFLICT
    assert "Duplicate entry" not in error.message


def test_foreign_key_is_validation():
    assert from_db_error(db_error(1452, "Cannot add or update a child row")).kind == ErrorKind.VALIDATION


def test_deadlock_is_conflict():
    assert from_db_error(db_error(1213, "Deadlock found")).status_code == 409


def test_unknown_error_is_internal_with_generic_message():
    error = from_db_error(db_error(1146, "Table 'paperscope.Papers' doesn't exist"))
    assert error.kind == ErrorKind.INTERNAL
    assert error.status_code == 500
    assert error.message == "Internal server error"
    assert "doesn't exist" in error.detail


def test_body_carries_extra_fields_but_not_detail():
    error = PaperScopeError(ErrorKind.CONFLICT, "Duplicate", detail="secret", duplicates=[{"paper_title": "A"}])
    body = error.to_body()
    assert body == {
        "status": "error",
        "kind": "conflict",
        "error": "Duplicate",
        "duplicates": [{"paper_title": "A"}],
    }


def test_database_error_response_hides_sql(client, fake_db):
    fake_db.conn.when("FROM Venues", db_error(1054, "Unknown column 'v.secret' in 'field list'"))

    response = client.get("/api/venues")

    assert response.status_code == 500
    body = response.json()
    assert body["kind"] == "internal"
    assert "secret" not in response.text


def test_missing_query_parameter_is_400(client):
    response = client.get("/api/advanced/query4")

    assert response.status_code == 400
    body = response.json()
    assert body["kind"] == "validation"
    assert body["fields"][0]["field"] == "query.user_id"


def test_unhandled_exception_is_generic_500(client, fake_db):
    fake_db.conn.when("FROM Datasets", RuntimeError("boom at /srv/app.py line 3"))

    response = client.get("/api/datasets")

    assert response.status_code == 500
    assert response.json()["error"] == "Internal server error"
    assert "boom" not in response.text


def test_error_schema_is_documented(client):
    schema = client.get("/openapi.json").json()

    assert "ErrorResponse" in schema["components"]["schemas"]
    responses = schema["paths"]["/api/papers/{paper_id}"]["get"]["responses"]
    assert responses["404"]["content"]["application/json"]["schema"]["$ref"].endswith("/ErrorResponse")


def test_unknown_route_uses_error_shape(client):
    response = client.get("/api/nothing-here")

    assert response.status_code == 404
    assert response.json() == {"status": "error", "kind": "not_found", "error": "Not found"}


def test_duplicate_title_signal_is_conflict():
    error = from_db_error(db_error(1644, "Duplicate paper title for this venue"))
    assert error.kind == ErrorKind.CONFLICT
    assert error.status_code == 409
    assert error.message == "Duplicate paper title for this venue"


def test_other_signal_stays_validation():
    error = from_db_error(db_error(1644, "Venue is closed for submissions"))
    assert error.kind == ErrorKind.VALIDATION
