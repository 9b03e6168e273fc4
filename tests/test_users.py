"""Tests for the user service running against an in-memory MongoDB."""

from __future__ import annotations

import unittest
from unittest import mock
from uuid import uuid4

import mongomock
from bson import ObjectId

from multitarget.config import Configuration, ConfigurationHelper
from multitarget.errors import ConfigurationMissing, DatabaseConnectionError, InitializationError, InvalidArgument
from multitarget.models import User
from multitarget.users import USERS_COLLECTION, UserService


def _configuration(database_name: str) -> Configuration:
    return Configuration(
        {
            "ConnectionStrings": {"MongoDB": "mongodb://localhost:27017"},
            "MongoDB": {"DatabaseName": database_name},
        }
    )


class UserServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.database_name = f"users_{uuid4().hex}"
        self.client = mongomock.MongoClient(tz_aware=True)
        self.service = UserService(
            ConfigurationHelper(_configuration(self.database_name)),
            client_factory=lambda endpoint: self.client,
        )

    def tearDown(self) -> None:
        self.service.close()

    def test_user_lifecycle(self) -> None:
        self.assertEqual(self.service.get_user_count(), 0)

        user = self.service.create_user("Ada", "ada@example.com")
        self.assertIsInstance(user.id, ObjectId)
        self.assertTrue(user.is_active)
        self.assertIsNotNone(user.created_at)
        self.assertIsNone(user.updated_at)

        fetched = self.service.get_user_by_email("ada@example.com")
        self.assertIsNotNone(fetched)
        assert fetched is not None
        self.assertEqual(fetched.id, user.id)
        self.assertEqual(fetched.name, "Ada")
        self.assertEqual(fetched.email, "ada@example.com")
        self.assertTrue(fetched.is_active)

        self.assertTrue(self.service.update_user_status(user.id, False))
        refreshed = self.service.get_user_by_email("ada@example.com")
        assert refreshed is not None
        self.assertFalse(refreshed.is_active)
        self.assertIsNotNone(refreshed.updated_at)

        self.assertTrue(self.service.delete_user(user.id))
        self.assertFalse(self.service.delete_user(user.id))
        self.assertEqual(self.service.get_user_count(), 0)

    def test_identifiers_are_unique(self) -> None:
        first = self.service.create_user("Ada", "ada@example.com")
        second = self.service.create_user("Grace", "grace@example.com")

        self.assertNotEqual(first.id, second.id)

    def test_count_tracks_creates_and_deletes(self) -> None:
        users = [self.service.create_user(f"User {i}", f"user{i}@example.com") for i in range(5)]
        for user in users[:2]:
            self.service.delete_user(user.id)

        self.assertEqual(self.service.get_user_count(), 3)
        self.assertEqual(len(self.service.list_users()), 3)

    def test_duplicate_emails_are_allowed(self) -> None:
        self.service.create_user("Ada", "shared@example.com")
        self.service.create_user("Ada Again", "shared@example.com")

        self.assertEqual(self.service.get_user_count(), 2)

    def test_documents_are_stored_in_users_collection(self) -> None:
        user = self.service.create_user("Ada", "ada@example.com")

        stored = self.client[self.database_name][USERS_COLLECTION].find_one({"_id": user.id})
        self.assertIsNotNone(stored)
        self.assertEqual(stored["email"], "ada@example.com")
        self.assertTrue(stored["is_active"])

    def test_unknown_user_status_update_returns_false(self) -> None:
        self.assertFalse(self.service.update_user_status(ObjectId(), True))

    def test_string_identifiers_are_accepted(self) -> None:
        user = self.service.create_user("Ada", "ada@example.com")

        self.assertTrue(self.service.update_user_status(str(user.id), False))
        self.assertTrue(self.service.delete_user(str(user.id)))

    def test_malformed_identifier_is_rejected(self) -> None:
        for user_id in ("not-an-object-id", None, 42, b"short"):
            with self.subTest(user_id=user_id):
                with self.assertRaises(InvalidArgument):
                    self.service.delete_user(user_id)
                with self.assertRaises(InvalidArgument):
                    self.service.update_user_status(user_id, True)

    def test_timestamps_survive_storage_round_trip(self) -> None:
        user = self.service.create_user("Ada", "ada@example.com")

        fetched = self.service.get_user_by_email("ada@example.com")
        self.assertEqual(fetched.created_at, user.created_at)
        self.assertIsNotNone(fetched.created_at.tzinfo)
        self.assertEqual(user.created_at.microsecond % 1000, 0)

        self.service.update_user_status(user.id, False)
        refreshed = self.service.get_user_by_email("ada@example.com")
        self.assertIsNotNone(refreshed.updated_at.tzinfo)
        self.assertGreaterEqual(refreshed.updated_at, user.created_at)

    def test_get_user_by_email_returns_none_when_missing(self) -> None:
        self.assertIsNone(self.service.get_user_by_email("nobody@example.com"))

    def test_validation_happens_before_io(self) -> None:
        with mock.patch.object(self.service.repository, "insert_one") as insert_one:
            for name, email in (("", "a@example.com"), ("Ada", ""), ("   ", "a@example.com"), ("Ada", None)):
                with self.assertRaises(InvalidArgument):
                    self.service.create_user(name, email)  # type: ignore[arg-type]
            insert_one.assert_not_called()

        with self.assertRaises(InvalidArgument):
            self.service.get_user_by_email("")

    def test_test_database_connection_delegates_to_context(self) -> None:
        with mock.patch.object(self.service.repository.context, "test_connection", return_value=True) as probe:
            self.assertTrue(self.service.test_database_connection())
        probe.assert_called_once_with()

    def test_close_is_idempotent(self) -> None:
        self.service.close()
        self.service.close()

        self.assertTrue(self.service.repository.context.closed)


class UserServiceInitializationTests(unittest.TestCase):
    def test_missing_configuration_raises_initialization_error(self) -> None:
        helper = ConfigurationHelper(Configuration({"MongoDB": {"DatabaseName": "db"}}))

        with self.assertRaises(InitializationError) as ctx:
            UserService(helper, client_factory=lambda endpoint: mongomock.MongoClient())

        self.assertIsInstance(ctx.exception.__cause__, ConfigurationMissing)

    def test_client_failure_raises_initialization_error(self) -> None:
        def factory(endpoint: str):
            raise RuntimeError("driver exploded")

        with self.assertRaises(InitializationError) as ctx:
            UserService(ConfigurationHelper(_configuration("db")), client_factory=factory)

        self.assertIsInstance(ctx.exception.__cause__, DatabaseConnectionError)


class UserModelTests(unittest.TestCase):
    def test_document_round_trip_preserves_optional_fields(self) -> None:
        document = {
            "_id": ObjectId(),
            "name": "Ada",
            "email": "ada@example.com",
            "created_at": mock.sentinel.created,
            "is_active": True,
        }

        user = User.from_document(document)

        self.assertIsNone(user.updated_at)
        self.assertEqual(user.to_document()["_id"], document["_id"])
        self.assertIs(user.to_document()["created_at"], mock.sentinel.created)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
