"""Tests for per-type repository resolution."""

import threading
import time

import pytest

from mongosetup.config import Settings
from mongosetup.data import BaseEntity, MongoRepository, RepositoryRegistry, User, create_mongo_repository
from mongosetup.data.registry import collection_name, connection_string_name
from mongosetup.database import close_all
from mongosetup.exceptions import ConfigurationError


class Report(BaseEntity):
    class Settings:
        connection_string_name = "Reporting"
        collection_name = "reports"

    title: str


@pytest.fixture
def make_settings(clean_env):
    def _make(**connection_strings) -> Settings:
        return Settings(
            config_file=clean_env / "missing.yaml",
            connection_strings=connection_strings,
        )

    return _make


@pytest.fixture(autouse=True)
def _close_clients():
    yield
    close_all()


def test_settings_defaults():
    assert connection_string_name(User) == "MongoServerSettings"
    assert collection_name(User) == "User"
    assert connection_string_name(Report) == "Reporting"
    assert collection_name(Report) == "reports"


def test_concurrent_first_access_builds_one_repository():
    built = []

    def slow_factory(entity_type):
        built.append(entity_type)
        time.sleep(0.05)
        return object()

    registry = RepositoryRegistry(factory=slow_factory)
    barrier = threading.Barrier(16)
    results = []

    def worker():
        barrier.wait()
        results.append(registry.get(User))

    threads = [threading.Thread(target=worker) for _ in range(16)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert built == [User]
    assert len(results) == 16
    assert all(result is results[0] for result in results)
    assert registry.get(User) is results[0]


def test_each_entity_type_gets_its_own_repository():
    registry = RepositoryRegistry(factory=lambda entity_type: object())

    assert registry.get(User) is not registry.get(Report)
    assert User in registry
    assert Report in registry


def test_missing_connection_string_raises(make_settings):
    registry = RepositoryRegistry(settings=make_settings())

    with pytest.raises(ConfigurationError) as exc_info:
        registry.get(User)

    assert exc_info.value.connection_string_name == "MongoServerSettings"
    assert "MongoServerSettings" in str(exc_info.value)
    assert User not in registry


def test_blank_connection_string_raises(make_settings):
    registry = RepositoryRegistry(settings=make_settings(MongoServerSettings="   "))

    with pytest.raises(ConfigurationError):
        registry.get(User)


def test_create_mongo_repository_uses_entity_settings(make_settings):
    settings = make_settings(reporting="mongodb://localhost:27017/reportdb")

    repository = create_mongo_repository(Report, settings)

    assert isinstance(repository, MongoRepository)
    assert repository.entity_type is Report
    assert repository.collection.name == "reports"
    assert repository.collection.database.name == "reportdb"


def test_create_mongo_repository_falls_back_to_default_database(make_settings):
    settings = make_settings(MongoServerSettings="mongodb://localhost:27017")

    repository = create_mongo_repository(User, settings)

    assert repository.collection.name == "User"
    assert repository.collection.database.name == settings.default_database


def test_register_and_clear():
    registry = RepositoryRegistry(factory=lambda entity_type: object())
    injected = object()

    registry.register(User, injected)
    assert registry.get(User) is injected

    registry.clear()
    assert User not in registry
    assert registry.get(User) is not injected
