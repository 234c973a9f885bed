import pytest
from fastapi import BackgroundTasks

from db.connection import SessionLocal
from db.models import Task, TaskAssignee, User, UserRole
from db.Schema.task import TaskCreate, TaskUpdate
from services import task_service
from utils.errors import ClientNotLinked, NotFound


@pytest.fixture
def alice(make_user):
    return make_user("alice@incial.com", name="Alice")


@pytest.fixture
def bob(make_user):
    return make_user("bob@incial.com", name="Bob")


@pytest.fixture
def carol(make_user):
    return make_user("carol@incial.com", name="Carol")


def _counter(db, user):
    db.expire_all()
    return db.get(User, user.id).tasks_completed


def _create(db, actor, assignees=None, **fields):
    fields.setdefault("title", "Design landing page")
    fields.setdefault("status", "In Progress")
    return task_service.create_task(db, TaskCreate(assigned_to_list=assignees, **fields), actor)


# ---------------- Buckets ----------------
@pytest.mark.parametrize("status, terminal", [
    ("Completed", True),
    ("done", True),
    (" POSTED ", True),
    ("In Progress", False),
    ("", False),
    (None, False),
    ("Completed soon", False),
])
def test_status_buckets(status, terminal):
    assert task_service.is_terminal_status(status) is terminal


def test_active_and_completed_queries(db, admin):
    open_task = _create(db, admin, title="Open")
    done_task = _create(db, admin, title="Done", status="DONE")
    no_status = _create(db, admin, title="Unset", status=None)

    assert [t.id for t in task_service.get_active_tasks(db)] == [open_task.id, no_status.id]
    assert [t.id for t in task_service.get_completed_tasks(db)] == [done_task.id]


# ---------------- Create ----------------
def test_create_sets_assignees_and_notifies_each(db, outbox, admin, alice, bob):
    task = _create(db, admin, assignees=["Alice@incial.com", "bob@incial.com", "alice@incial.com", " ", "Unassigned"])

    assert task.assigned_to_list == ["alice@incial.com", "bob@incial.com"]
    assert [a.assignee_name for a in task.assignees] == ["Alice", "Bob"]
    assert task.last_updated_by == admin.email
    assert task.last_updated_at is not None
    assert sorted(m["to"] for m in outbox["task"]) == ["alice@incial.com", "bob@incial.com"]
    assert all(m["assigned_by"] == admin.name for m in outbox["task"])


def test_unregistered_assignee_uses_email_as_name(db, admin):
    task = _create(db, admin, assignees=["freelancer@outside.io"])

    assert task.assignees[0].assignee_name == "freelancer@outside.io"


def test_create_with_unknown_company_fails(db, admin):
    with pytest.raises(NotFound):
        _create(db, admin, company_id=999)
    assert db.query(Task).count() == 0


def test_notification_failure_does_not_fail_create(db, monkeypatch, admin, alice):
    from services import mail

    def broken(to_email, task, assigned_by=None):
        raise OSError("smtp down")
    monkeypatch.setattr(mail, "send_task_assignment_email", broken)

    task = _create(db, admin, assignees=["alice@incial.com"])

    assert db.get(Task, task.id) is not None


def test_notifications_wait_for_background_queue(db, outbox, admin, alice):
    queue = BackgroundTasks()

    task = task_service.create_task(
        db, TaskCreate(title="Queued", assigned_to_list=["alice@incial.com"]), admin, queue
    )

    assert outbox["task"] == []
    assert len(queue.tasks) == 1

    for job in queue.tasks:
        job.func(*job.args, **job.kwargs)
    assert outbox["task"] == [{"to": "alice@incial.com", "task_id": task.id, "assigned_by": admin.name}]


# ---------------- Update: assignee diff ----------------
def test_assignee_diff_notifies_only_new_and_removes_old(db, outbox, admin, alice, bob, carol):
    task = _create(db, admin, assignees=["alice@incial.com", "bob@incial.com"])
    outbox["task"].clear()

    updated = task_service.update_task(db, task.id, TaskUpdate(assigned_to_list=["bob@incial.com", "carol@incial.com"]), admin)

    assert updated.assigned_to_list == ["bob@incial.com", "carol@incial.com"]
    assert [m["to"] for m in outbox["task"]] == ["carol@incial.com"]
    assert db.query(TaskAssignee).filter(TaskAssignee.assignee_email == "alice@incial.com").count() == 0


def test_kept_assignee_row_is_not_recreated(db, admin, alice, bob):
    task = _create(db, admin, assignees=["alice@incial.com"])
    original_row_id = task.assignees[0].id

    updated = task_service.update_task(db, task.id, TaskUpdate(assigned_to_list=["alice@incial.com", "bob@incial.com"]), admin)

    assert updated.assignees[0].id == original_row_id


def test_omitted_assignee_list_leaves_assignees_alone(db, outbox, admin, alice):
    task = _create(db, admin, assignees=["alice@incial.com"])
    outbox["task"].clear()

    updated = task_service.update_task(db, task.id, TaskUpdate(description="new copy"), admin)

    assert updated.assigned_to_list == ["alice@incial.com"]
    assert updated.description == "new copy"
    assert outbox["task"] == []


def test_empty_assignee_list_clears_assignees(db, admin, alice):
    task = _create(db, admin, assignees=["alice@incial.com"])

    updated = task_service.update_task(db, task.id, TaskUpdate(assigned_to_list=[]), admin)

    assert updated.assigned_to_list == []


def test_update_is_partial_and_stamps_actor(db, admin, employee):
    task = _create(db, admin, priority="High", description="keep me")

    updated = task_service.update_task(
        db, task.id, TaskUpdate(priority="Low", last_updated_by="spoofed@incial.com"), employee
    )

    assert updated.priority == "Low"
    assert updated.description == "keep me"
    assert updated.title == "Design landing page"
    assert updated.last_updated_by == employee.email


def test_update_missing_task(db, admin):
    with pytest.raises(NotFound):
        task_service.update_task(db, 404, TaskUpdate(status="Done"), admin)


# ---------------- Update: completion counter ----------------
def test_completion_credits_each_assignee_exactly_once(db, admin, alice, bob):
    task = _create(db, admin, assignees=["alice@incial.com", "bob@incial.com"])

    task_service.update_task(db, task.id, TaskUpdate(status="Completed"), admin)
    assert (_counter(db, alice), _counter(db, bob)) == (1, 1)

    # terminal -> terminal is not a transition
    task_service.update_task(db, task.id, TaskUpdate(status="Done"), admin)
    task_service.update_task(db, task.id, TaskUpdate(status="posted"), admin)
    assert (_counter(db, alice), _counter(db, bob)) == (1, 1)


def test_overlapping_completions_credit_once(db, admin, alice, bob):
    task = _create(db, admin, assignees=["alice@incial.com", "bob@incial.com"])
    other = SessionLocal()
    try:
        # Second request loaded the task before the first one committed
        stale = other.get(Task, task.id)
        assert stale.status == "In Progress"

        task_service.update_task(db, task.id, TaskUpdate(status="Completed"), admin)
        task_service.update_task(other, task.id, TaskUpdate(status="Completed"), admin)
    finally:
        other.close()

    assert (_counter(db, alice), _counter(db, bob)) == (1, 1)


def test_reopened_task_counts_again(db, admin, alice):
    task = _create(db, admin, assignees=["alice@incial.com"])

    task_service.update_task(db, task.id, TaskUpdate(status="Completed"), admin)
    task_service.update_task(db, task.id, TaskUpdate(status="In Progress"), admin)
    task_service.update_task(db, task.id, TaskUpdate(status="Completed"), admin)

    assert _counter(db, alice) == 2


def test_completion_uses_assignees_set_in_same_update(db, admin, alice, bob):
    task = _create(db, admin, assignees=["alice@incial.com"])

    task_service.update_task(
        db, task.id, TaskUpdate(status="done", assigned_to_list=["bob@incial.com"]), admin
    )

    assert (_counter(db, alice), _counter(db, bob)) == (0, 1)


def test_completion_falls_back_to_legacy_email_field(db, admin, alice):
    task = _create(db, admin, assigned_to="alice@incial.com")

    task_service.update_task(db, task.id, TaskUpdate(status="Completed"), admin)

    assert _counter(db, alice) == 1


def test_legacy_field_without_email_credits_nobody(db, admin, alice):
    task = _create(db, admin, assigned_to="Alice")

    task_service.update_task(db, task.id, TaskUpdate(status="Completed"), admin)

    assert _counter(db, alice) == 0


def test_unknown_assignee_does_not_block_completion(db, admin, alice):
    task = _create(db, admin, assignees=["ghost@incial.com", "alice@incial.com"])

    updated = task_service.update_task(db, task.id, TaskUpdate(status="Completed"), admin)

    assert updated.status == "Completed"
    assert _counter(db, alice) == 1


def test_failing_increment_is_isolated(db, monkeypatch, admin, alice, bob):
    real_increment = task_service.increment_tasks_completed

    def flaky(session, email):
        if email == "alice@incial.com":
            raise RuntimeError("lock timeout")
        return real_increment(session, email)
    monkeypatch.setattr(task_service, "increment_tasks_completed", flaky)

    task = _create(db, admin, assignees=["alice@incial.com", "bob@incial.com"])
    updated = task_service.update_task(db, task.id, TaskUpdate(status="Completed"), admin)

    assert updated.status == "Completed"
    assert (_counter(db, alice), _counter(db, bob)) == (0, 1)


def test_failed_update_rolls_back_fields_and_assignees(db, monkeypatch, admin, alice, bob):
    task = _create(db, admin, assignees=["alice@incial.com"])

    def explode(*args, **kwargs):
        raise RuntimeError("storage failure")
    monkeypatch.setattr(task_service, "_increment_completion_counters", explode)

    with pytest.raises(RuntimeError):
        task_service.update_task(
            db, task.id, TaskUpdate(status="Completed", assigned_to_list=["bob@incial.com"]), admin
        )

    db.expire_all()
    reloaded = db.get(Task, task.id)
    assert reloaded.status == "In Progress"
    assert reloaded.assigned_to_list == ["alice@incial.com"]


# ---------------- Queries ----------------
def test_current_user_tasks_matches_assignees_and_legacy_field(db, admin, alice, bob):
    assigned = _create(db, admin, title="Structured", assignees=["alice@incial.com"])
    legacy_email = _create(db, admin, title="Legacy email", assigned_to="ALICE@incial.com")
    legacy_handle = _create(db, admin, title="Legacy handle", assigned_to="alice")
    _create(db, admin, title="Someone else", assignees=["bob@incial.com"])

    mine = task_service.get_current_user_tasks(db, "alice@incial.com")

    assert [t.id for t in mine] == [assigned.id, legacy_email.id, legacy_handle.id]


def test_client_tasks_scoped_to_linked_company(db, admin, make_user, make_crm_entry):
    acme = make_crm_entry("Acme")
    globex = make_crm_entry("Globex")
    acme_task = _create(db, admin, title="Acme work", company_id=acme.id)
    _create(db, admin, title="Globex work", company_id=globex.id)
    client_user = make_user("buyer@acme.io", role=UserRole.CLIENT, client_crm_id=acme.id)

    assert [t.id for t in task_service.get_client_tasks(db, client_user)] == [acme_task.id]


def test_unlinked_client_gets_client_not_linked(db, make_user):
    client_user = make_user("buyer@acme.io", role=UserRole.CLIENT)

    with pytest.raises(ClientNotLinked):
        task_service.get_client_tasks(db, client_user)


def test_delete_cascades_assignees(db, admin, alice):
    task = _create(db, admin, assignees=["alice@incial.com"])

    task_service.delete_task(db, task.id)

    assert db.query(Task).count() == 0
    assert db.query(TaskAssignee).count() == 0
    with pytest.raises(NotFound):
        task_service.delete_task(db, task.id)
