"""Seed the developer user."""

import logging

from mongosetup.data.user import User

logger = logging.getLogger(__name__)

DEVELOPER_EMAIL = "aamir@demo.com"
DEVELOPER_ID = "000000000000000000000000"
DEVELOPER_FIRST_NAME = "Developer"
DEVELOPER_LAST_NAME = ".NET"


def seed_developer() -> User:
    """
    Upsert the developer user.

    Reuses the user with the developer email when one exists, otherwise
    creates it under the fixed developer id. Running this repeatedly
    leaves a single document with the same values.
    """
    user = User.as_queryable().where(email=DEVELOPER_EMAIL).first()
    if user is None:
        logger.info(f"No user with email {DEVELOPER_EMAIL}, creating {DEVELOPER_ID}")
        user = User(
            id=DEVELOPER_ID,
            email=DEVELOPER_EMAIL,
            first_name=DEVELOPER_FIRST_NAME,
            last_name=DEVELOPER_LAST_NAME,
        )
    else:
        logger.info(f"Updating existing user {user.id}")
        user.email = DEVELOPER_EMAIL
        user.first_name = DEVELOPER_FIRST_NAME
        user.last_name = DEVELOPER_LAST_NAME

    return user.save()
