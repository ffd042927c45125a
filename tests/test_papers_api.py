from datetime import datetime

from sqlalchemy.exc import OperationalError


def paper_row(paper_id, title, abstract="", uploaded=datetime(2024, 5, 1, 12, 0)):
    return {
        "paper_id": paper_id,
        "paper_title": title,
        "abstract": abstract,
        "pdf_url": None,
        "upload_timestamp": uploaded,
        "status": "Published",
        "venue_id": "V001",
        "venue_name": "NeurIPS",
        "year": 2024,
    }


def test_health_ok(client, fake_db):
    fake_db.conn.when("SELECT 1", [{"ok": 1}])

    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_health_reports_disconnected_without_detail(client, fake_db):
    fake_db.conn.when("SELECT 1", OperationalError("SELECT 1", {}, Exception(2003, "Can't connect to 10.0.0.5")))

    response = client.get("/api/health")

    assert response.status_code == 500
    assert response.json() == {"ok": False, "status": "disconnected"}


def test_root_banner(client):
    body = client.get("/").json()
    assert body["message"] == "PaperScope API"


def test_legacy_search_returns_plain_list(client, fake_db):
    conn = fake_db.conn
    conn.when("FROM Papers p LEFT JOIN Venues v", [
        paper_row("P002", "Transformer Scaling", uploaded=datetime(2024, 6, 1)),
        paper_row("P001", "Efficient transformers", uploaded=datetime(2024, 1, 1)),
    ])

    response = client.get("/api/papers", params={"search": "Transformer"})

    assert response.status_code == 200
    body = response.json()
    assert [p["paper_id"] for p in body] == ["P002", "P001"]

    (sql, params), = conn.executed("FROM Papers p")
    assert "ORDER BY p.upload_timestamp DESC" in sql
    assert sql.endswith("LIMIT 20 OFFSET 0")
    assert "LOWER(p.paper_title) LIKE :like OR LOWER(p.abstract) LIKE :like" in sql
    assert params == {"like": "%transformer%"}


def test_legacy_listing_without_search_has_no_where(client, fake_db):
    client.get("/api/papers")

    (sql, params), = fake_db.conn.executed("FROM Papers p")
    assert " WHERE " not in sql
    assert params == {}


def test_paginated_listing_envelope(client, fake_db):
    conn = fake_db.conn
    conn.when("COUNT(*) AS total", [{"total": 45}])
    conn.when("FROM Papers p LEFT JOIN Venues v", [paper_row(f"P{i:03d}", f"Paper {i}") for i in range(20)])

    response = client.get("/api/papers", params={"page": 2, "limit": 20, "venue_id": "V001"})

    assert response.status_code == 200
    body = response.json()
    assert len(body["papers"]) == 20
    assert body["pagination"] == {"page": 2, "limit": 20, "total": 45, "totalPages": 3}

    (count_sql, count_params), = conn.executed("COUNT(*) AS total")
    (page_sql, page_params), = conn.executed("LEFT JOIN Venues v")
    assert count_params == page_params == {"venue_id": "V001"}
    assert "WHERE p.venue_id = :venue_id" in count_sql
    assert page_sql.endswith("LIMIT 20 OFFSET 20")


def test_paginated_listing_defaults_limit(client, fake_db):
    fake_db.conn.when("COUNT(*) AS total", [{"total": 0}])

    body = client.get("/api/papers", params={"status": "Under Review"}).json()

    assert body == {"papers": [], "pagination": {"page": 1, "limit": 20, "total": 0, "totalPages": 0}}
    (_, params), = fake_db.conn.executed("COUNT(*) AS total")
    assert params == {"status": "Under Review"}


def test_search_still_filters_when_limit_is_given(client, fake_db):
    conn = fake_db.conn
    conn.when("COUNT(*) AS total", [{"total": 2}])
    conn.when("FROM Papers p LEFT JOIN Venues v", [
        paper_row("P002", "Transformer Scaling"),
        paper_row("P001", "Efficient transformers"),
    ])

    body = client.get("/api/papers", params={"search": "Transformer", "limit": 5}).json()

    assert body["pagination"] == {"page": 1, "limit": 5, "total": 2, "totalPages": 1}
    (count_sql, count_params), = conn.executed("COUNT(*) AS total")
    (page_sql, page_params), = conn.executed("LEFT JOIN Venues v")
    assert count_params == page_params == {"like": "%transformer%"}
    assert "LOWER(p.paper_title) LIKE :like" in count_sql
    assert page_sql.endswith("LIMIT 5 OFFSET 0")


def test_q_takes_precedence_over_search(client, fake_db):
    fake_db.conn.when("COUNT(*) AS total", [{"total": 0}])

    client.get("/api/papers", params={"search": "transformer", "q": "diffusion"})

    (_, params), = fake_db.conn.executed("COUNT(*) AS total")
    assert params == {"like": "%diffusion%"}


def test_paginated_listing_rejects_bad_limits(client, fake_db):
    assert client.get("/api/papers", params={"limit": 0}).status_code == 400
    assert client.get("/api/papers", params={"limit": 101}).status_code == 400
    assert client.get("/api/papers", params={"page": 0}).status_code == 400
    assert client.get("/api/papers", params={"status": "Bogus"}).status_code == 400
    assert fake_db.conn.statements == []


def test_paper_detail(client, fake_db):
    row = paper_row("P001", "Graph Transformers")
    row.update(review_count=3, last_review_at=datetime(2024, 7, 1, 9, 30))
    fake_db.conn.when("WHERE p.paper_id = :paper_id", [row])

    body = client.get("/api/papers/P001").json()

    assert body["review_count"] == 3
    assert body["venue_name"] == "NeurIPS"


def test_paper_detail_not_found(client):
    response = client.get("/api/papers/P404")

    assert response.status_code == 404
    assert response.json()["kind"] == "not_found"


def test_update_requires_title(client, fake_db):
    response = client.put("/api/papers/P001", json={"abstract": "x"})

    assert response.status_code == 400
    assert fake_db.connects == 0


def test_update_only_sets_given_fields(client, fake_db):
    fake_db.conn.when("FOR UPDATE", [{"paper_id": "P001"}])

    response = client.put("/api/papers/P001", json={"paper_title": "New Title", "status": "Under Review"})

    assert response.status_code == 200
    (sql, params), = fake_db.conn.executed("UPDATE Papers SET")
    assert sql.startswith("UPDATE Papers SET paper_title = :paper_title, status = :status WHERE")
    assert params == {"paper_title": "New Title", "status": "Under Review", "paper_id": "P001"}


def test_update_by_non_author_is_forbidden(client, fake_db):
    fake_db.conn.when("FOR UPDATE", [{"paper_id": "P001"}])

    response = client.put("/api/papers/P001", json={"paper_title": "New Title", "user_id": "U009"})

    assert response.status_code == 403
    assert fake_db.conn.executed("UPDATE Papers") == []
    assert fake_db.rollbacks == 1


def test_update_trigger_message_surfaces_as_400(client, fake_db):
    fake_db.conn.when("FOR UPDATE", [{"paper_id": "P001"}])
    fake_db.conn.when("UPDATE Papers", OperationalError(
        "UPDATE", {}, Exception(1644, "AI paper must have a real PDF URL before review")
    ))

    response = client.put("/api/papers/P001", json={"paper_title": "T", "status": "Under Review"})

    assert response.status_code == 400
    assert response.json()["error"] == "AI paper must have a real PDF URL before review"


def test_update_rejects_blank_title(client, fake_db):
    response = client.put("/api/papers/P001", json={"paper_title": "   "})

    assert response.status_code == 400
    assert response.json()["fields"][0]["field"] == "paper_title"
    assert fake_db.connects == 0


def test_update_strips_title(client, fake_db):
    fake_db.conn.when("FOR UPDATE", [{"paper_id": "P001"}])

    response = client.put("/api/papers/P001", json={"paper_title": "  New Title  "})

    assert response.status_code == 200
    (_, params), = fake_db.conn.executed("UPDATE Papers SET")
    assert params["paper_title"] == "New Title"


def test_update_rejects_explicit_null_status_and_venue(client, fake_db):
    for field in ("status", "venue_id"):
        response = client.put("/api/papers/P001", json={"paper_title": "T", field: None})

        assert response.status_code == 400
        assert response.json()["fields"][0]["field"] == field

    assert fake_db.connects == 0


def test_update_unknown_paper(client):
    assert client.put("/api/papers/P404", json={"paper_title": "T"}).status_code == 404


def test_delete_requires_user_id(client, fake_db):
    response = client.delete("/api/papers/P001")

    assert response.status_code == 400
    assert fake_db.connects == 0


def test_delete_unknown_paper(client, fake_db):
    response = client.delete("/api/papers/P404", params={"user_id": "U001"})

    assert response.status_code == 404
    assert fake_db.conn.executed("CALL sp_delete_paper") == []


def test_delete_locks_then_calls_procedure(client, fake_db):
    conn = fake_db.conn
    conn.when("FOR UPDATE", [{"paper_id": "P001"}])

    response = client.delete("/api/papers/P001", params={"user_id": "U001"})

    assert response.status_code == 200
    statements = [sql for sql, _ in conn.statements]
    assert "FOR UPDATE" in statements[0]
    assert statements[1].startswith("CALL sp_delete_paper")
    assert conn.statements[1][1] == {"paper_id": "P001", "user_id": "U001"}
    assert fake_db.commits == 1


def test_delete_by_non_author_rolls_back(client, fake_db):
    fake_db.conn.when("FOR UPDATE", [{"paper_id": "P001"}])
    fake_db.conn.when("CALL sp_delete_paper", OperationalError(
        "CALL", {}, Exception(1644, "Only an author can delete this paper")
    ))

    response = client.delete("/api/papers/P001", params={"user_id": "U007"})

    assert response.status_code == 400
    assert fake_db.rollbacks == 1
