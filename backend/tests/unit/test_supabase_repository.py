from datetime import datetime, timezone
from unittest.mock import MagicMock

import httpx
import pytest
from postgrest.exceptions import APIError
from pydantic import ValidationError

from tracker.core.exceptions import RepositoryError
from tracker.models.schemas import Author, Journal, StatusHistoryEntry
from tracker.models.submission import SubmissionStatus
from tracker.services.supabase_repository import SupabaseRepository


class _Resp:
    def __init__(self, data):
        self.data = data


def _chain():
    q = MagicMock()
    for method in ("select", "eq", "limit", "order", "or_", "insert", "update", "delete", "upsert"):
        getattr(q, method).return_value = q
    return q


@pytest.fixture
def db():
    client = MagicMock()
    tables: dict[str, MagicMock] = {}

    def _table(name: str):
        tables.setdefault(name, _chain())
        return tables[name]

    client.table.side_effect = _table
    client._tables = tables  # type: ignore[attr-defined]
    return client


def test_get_submission_maps_row(db):
    t = db.table("submissions")
    t.execute.return_value = _Resp(
        [
            {
                "id": "s1",
                "title": "T",
                "abstract": "A",
                "keywords": "k1, k2",
                "status": "REVISAO_SOLICITADA",
                "submitted_at": "2024-03-01T10:00:00+00:00",
                "journal_id": "j1",
                "alternate_journal_id": None,
                "original_submission_id": None,
                "creator_id": "u1",
                "action_plan": None,
            }
        ]
    )

    sub = SupabaseRepository(db_client=db).get_submission("s1")

    assert sub.status == SubmissionStatus.REVISAO_SOLICITADA
    assert sub.journal_id == "j1"
    t.eq.assert_called_with("id", "s1")


def test_get_submission_missing_returns_none(db):
    db.table("submissions").execute.return_value = _Resp([])
    assert SupabaseRepository(db_client=db).get_submission("nope") is None


def test_get_journal_normalizes_qualis(db):
    db.table("journals").execute.return_value = _Resp([{"id": "j1", "name": "J", "qualis": "b1"}])
    assert SupabaseRepository(db_client=db).get_journal("j1").qualis == "B1"


def test_set_status_and_append_history_payloads(db):
    repo = SupabaseRepository(db_client=db)
    subs = db.table("submissions")
    hist = db.table("status_history")
    subs.execute.return_value = _Resp([{"id": "s1"}])
    hist.execute.return_value = _Resp([{"id": "h1"}])

    repo.set_submission_status("s1", SubmissionStatus.APROVADO)
    repo.append_history(
        "s1",
        StatusHistoryEntry(
            status=SubmissionStatus.APROVADO,
            changed_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
            note="ok",
        ),
    )

    subs.update.assert_called_with({"status": "APROVADO"})
    payload = hist.insert.call_args.args[0]
    assert payload == {
        "submission_id": "s1",
        "status": "APROVADO",
        "changed_at": "2024-05-01T00:00:00+00:00",
        "note": "ok",
    }


def test_list_history_orders_newest_first(db):
    hist = db.table("status_history")
    hist.execute.return_value = _Resp(
        [{"submission_id": "s1", "status": "APROVADO", "changed_at": "2024-05-01T00:00:00+00:00", "note": None}]
    )
    [entry] = SupabaseRepository(db_client=db).list_history("s1")
    assert entry.status == SubmissionStatus.APROVADO
    hist.order.assert_called_with("changed_at", desc=True)


def test_replace_authors_deletes_then_inserts(db):
    authors = db.table("authors")
    authors.execute.return_value = _Resp([])

    SupabaseRepository(db_client=db).replace_authors("s1", [Author(name="Ana", order=2)])

    authors.delete.assert_called_once()
    payload = authors.insert.call_args.args[0]
    assert payload[0]["author_order"] == 2
    assert payload[0]["submission_id"] == "s1"


def test_search_journals_strips_filter_syntax(db):
    journals = db.table("journals")
    journals.execute.return_value = _Resp([{"id": "j1", "name": "Management Review"}])

    out = SupabaseRepository(db_client=db).search_journals("manage,ment(")

    assert [j.id for j in out] == ["j1"]
    expr = journals.or_.call_args.args[0]
    assert "," in expr and "(" not in expr
    assert "name.ilike.%manage ment%" in expr


def test_count_submissions_by_journal(db):
    db.table("submissions").execute.return_value = _Resp(
        [{"journal_id": "j1"}, {"journal_id": "j1"}, {"journal_id": "j2"}, {"journal_id": None}]
    )
    assert SupabaseRepository(db_client=db).count_submissions_by_journal() == {"j1": 2, "j2": 1}


@pytest.mark.parametrize(
    "error",
    [
        APIError({"message": "relation does not exist", "code": "42P01"}),
        httpx.ConnectError("refused"),
    ],
)
def test_driver_errors_are_wrapped(db, error):
    db.table("submissions").execute.side_effect = error

    with pytest.raises(RepositoryError) as exc:
        SupabaseRepository(db_client=db).get_submission("s1")
    assert exc.value.__cause__ is error


def test_invalid_journal_row_is_wrapped(db):
    db.table("journals").execute.return_value = _Resp([{"id": "j2", "name": "", "area": "CS"}])

    with pytest.raises(RepositoryError) as exc:
        SupabaseRepository(db_client=db).list_journals()
    assert isinstance(exc.value.__cause__, ValidationError)


def test_invalid_submission_status_is_wrapped(db):
    db.table("submissions").execute.return_value = _Resp(
        [{"id": "s1", "title": "T", "abstract": "A", "status": "ARQUIVADO", "journal_id": "j1"}]
    )

    with pytest.raises(RepositoryError, match="invalid Submission row"):
        SupabaseRepository(db_client=db).get_submission("s1")


def test_list_submissions_filters_and_orders_newest_first(db):
    subs = db.table("submissions")
    subs.execute.return_value = _Resp(
        [{"id": "s2", "title": "T", "abstract": "A", "status": "APROVADO", "journal_id": "j1", "creator_id": "u1"}]
    )

    out = SupabaseRepository(db_client=db).list_submissions(
        status=SubmissionStatus.APROVADO, creator_id="u1", limit=5
    )

    assert [s.id for s in out] == ["s2"]
    subs.eq.assert_any_call("status", "APROVADO")
    subs.eq.assert_any_call("creator_id", "u1")
    subs.order.assert_called_with("submitted_at", desc=True)
    subs.limit.assert_called_with(5)


def test_list_authors_maps_author_order(db):
    authors = db.table("authors")
    authors.execute.return_value = _Resp(
        [{"name": "Ana", "email": None, "institution": "USP", "author_order": 1}]
    )

    [author] = SupabaseRepository(db_client=db).list_authors("s1")

    assert author.order == 1
    assert author.institution == "USP"
    authors.order.assert_called_with("author_order")


def test_list_alternative_journals_orders_by_priority(db):
    alts = db.table("alternative_journals")
    alts.execute.return_value = _Resp([{"journal_name": "Backup", "priority": 1, "reason": None}])

    [alt] = SupabaseRepository(db_client=db).list_alternative_journals("s1")

    assert alt.journal_name == "Backup"
    alts.order.assert_called_with("priority")


def test_delete_submission_targets_row(db):
    subs = db.table("submissions")
    subs.execute.return_value = _Resp([])

    SupabaseRepository(db_client=db).delete_submission("s1")

    subs.delete.assert_called_once()
    subs.eq.assert_called_with("id", "s1")


def test_insert_and_update_journal_payloads(db):
    journals = db.table("journals")
    journals.execute.return_value = _Resp([])
    repo = SupabaseRepository(db_client=db)

    repo.insert_journal(Journal(id="j9", name="New", qualis="b2"))
    repo.update_journal("j9", {"area": "History"})
    repo.update_journal("j9", {})

    assert journals.insert.call_args.args[0]["qualis"] == "B2"
    journals.update.assert_called_once_with({"area": "History"})


def test_get_review_and_update_review(db):
    reviews = db.table("reviews")
    reviews.execute.return_value = _Resp(
        [{"id": "r1", "submission_id": "s1", "received_at": "2024-02-01T00:00:00+00:00", "reviewers": []}]
    )
    repo = SupabaseRepository(db_client=db)

    assert repo.get_review("r1").submission_id == "s1"
    repo.update_review("r1", {"score": 70})
    reviews.update.assert_called_once_with({"score": 70})
