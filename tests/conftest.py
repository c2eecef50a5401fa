import pytest

from account_api import create_app
from services.errors import UploadError
from services.media import UploadedMedia


class FakeUploader:
    """Stands in for the hosted media service."""

    def __init__(self):
        self.uploads = []
        self.deleted = []
        self.fail = False

    def upload(self, file):
        if self.fail:
            raise UploadError("avatar file can't be uploaded")
        self.uploads.append(file.filename)
        n = len(self.uploads)
        return UploadedMedia(public_id=f"avatars/test-{n}", url=f"https://media.test/avatars/test-{n}.png")

    def delete(self, public_id):
        self.deleted.append(public_id)


class CapturingNotifier:
    def __init__(self):
        self.sent = []

    def send_password_reset(self, user, token, expires_at):
        self.sent.append((user.email, token, expires_at))


@pytest.fixture
def uploader():
    return FakeUploader()


@pytest.fixture
def notifier():
    return CapturingNotifier()


@pytest.fixture
def app(uploader, notifier):
    """Fresh app per test; each one gets its own in-memory database."""
    app = create_app("test", uploader=uploader, notifier=notifier)
    yield app
    storage = app.extensions["storage"]
    storage.close()
    storage.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def accounts(app):
    return app.extensions["accounts"]


@pytest.fixture
def sessions(accounts):
    return accounts.sessions


@pytest.fixture
def store(accounts):
    return accounts.store


@pytest.fixture
def registered(accounts):
    """The a@x.com user, registered with an active session."""
    return accounts.register("Ada Lovelace", "a@x.com", "secret123")
