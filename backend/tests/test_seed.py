"""Tests for the developer user seed."""

from mongosetup.data import User
from mongosetup.seed import DEVELOPER_EMAIL, DEVELOPER_ID, seed_developer


def test_seed_creates_developer(users):
    user = seed_developer()

    assert user.id == DEVELOPER_ID
    assert user.email == DEVELOPER_EMAIL
    assert user.display_name == "Developer .NET"
    assert User.count() == 1


def test_seed_is_idempotent(users):
    first = seed_developer()
    first_state = dict(users.documents)

    second = seed_developer()

    assert second.id == first.id
    assert User.count() == 1
    assert users.documents == first_state
    assert User.as_queryable().where(email=DEVELOPER_EMAIL).count() == 1


def test_seed_reuses_existing_user(users):
    existing = User(
        id="5f2b6c1e9d3a4b0012345678",
        email=DEVELOPER_EMAIL,
        title="Lead",
        first_name="Old",
        last_name="Name",
    ).save()

    user = seed_developer()

    assert user.id == existing.id
    assert user.title == "Lead"
    assert user.display_name == "Developer .NET"
    assert User.count() == 1
    assert User.get_by_id(existing.id).first_name == "Developer"


def test_seed_leaves_other_users_alone(users):
    User(email="someone@example.com", first_name="Some", last_name="One").save()

    seed_developer()

    assert User.count() == 2
    assert User.exists({"email": "someone@example.com"})
