import os

import django
import pytest
from django.test.utils import setup_test_environment

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")
django.setup()
setup_test_environment()

from tests.fakes import InMemoryDocumentStore, RecordingPushGateway  # noqa: E402


@pytest.fixture
def store():
    return InMemoryDocumentStore({
        "partnerships/p1": {"user1Id": "alice", "user2Id": "bob"},
        "users/alice": {"email": "alice@example.com", "fcmToken": "tokAlice"},
        "users/bob": {"email": "bob@example.com", "fcmToken": "tok123"},
    })


@pytest.fixture
def gateway():
    return RecordingPushGateway()
