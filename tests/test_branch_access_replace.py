import logging
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.sql.dml import Delete

from app.models.user_branch_access import UserBranchAccess
from app.services import branch_access
from conftest import FakeResult, make_book, make_user


@pytest.mark.asyncio
async def test_replace_deletes_inserts_and_commits_once(fake_db):
    user = make_user()
    a, b = uuid4(), uuid4()

    await branch_access.replace_branch_access(fake_db, user.id, [a, b, a], actor_id=uuid4())

    assert any(isinstance(stmt, Delete) for stmt in fake_db.executed)
    assert all(isinstance(row, UserBranchAccess) for row in fake_db.added)
    assert [(row.user_id, row.book_id) for row in fake_db.added] == [(user.id, a), (user.id, b)]
    assert fake_db.committed is True
    assert fake_db.rolled_back is False


@pytest.mark.asyncio
async def test_replace_locks_subject_row_first(fake_db):
    await branch_access.replace_branch_access(fake_db, uuid4(), [uuid4()])

    first = fake_db.executed[0]
    assert getattr(first, "_for_update_arg", None) is not None


@pytest.mark.asyncio
async def test_replace_with_empty_set_only_deletes(fake_db):
    await branch_access.replace_branch_access(fake_db, uuid4(), [])

    assert fake_db.added == []
    assert any(isinstance(stmt, Delete) for stmt in fake_db.executed)
    assert fake_db.committed is True


@pytest.mark.asyncio
async def test_replace_rolls_back_and_reraises_on_store_error(fake_db):
    fake_db.commit_error = OperationalError("INSERT", {}, Exception("connection lost"))

    with pytest.raises(OperationalError):
        await branch_access.replace_branch_access(fake_db, uuid4(), [uuid4()])

    assert fake_db.rolled_back is True
    assert fake_db.committed is False


@pytest.mark.asyncio
async def test_replace_returns_fresh_assigned_books(fake_db):
    owner = make_user()
    book = make_book(owner=owner, name="Central")
    fake_db.on_execute_return(FakeResult(items=[book]))

    branches = await branch_access.replace_branch_access(fake_db, uuid4(), [book.id])

    assert branches == [book]


@pytest.mark.asyncio
async def test_replace_writes_audit_record(fake_db, caplog):
    actor, subject, book_id = uuid4(), uuid4(), uuid4()
    audit = logging.getLogger("app.audit")
    audit.addHandler(caplog.handler)
    try:
        with caplog.at_level(logging.INFO, logger="app.audit"):
            await branch_access.replace_branch_access(fake_db, subject, [book_id], actor_id=actor)
    finally:
        audit.removeHandler(caplog.handler)

    records = [r for r in caplog.records if getattr(r, "event", None) == "branch_access.replaced"]
    assert len(records) == 1
    assert records[0].actor_id == str(actor)
    assert records[0].subject_id == str(subject)
    assert records[0].branch_ids == [str(book_id)]
