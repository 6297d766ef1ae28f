"""
Pytest configuration：
- 每個 app fixture 用獨立的記憶體 sqlite
- 檔案目錄以 FakeReader 代替 Supabase（大小寫不敏感的前綴比對，等同 ilike）
"""
import pytest

from app import create_app
from services.catalog import CatalogService
from services.db import get_session
from services.errors import FetchFailed
from services.models import Member
from services.storage import CatalogEntry, strip_one_extension

BASE_URL = "https://example.supabase.co"
BUCKET = "clinicalrxqfiles"

SAMPLE_PATHS = [
    "mtmthefuturetoday/Forms/UtilityForms/Consent.pdf",
    "mtmthefuturetoday/Forms/PrescriberComm/DrugInteractions/Letter.pdf",
    "mtmthefuturetoday/Forms/PrescriberComm/Other.pdf",
    "mtmthefuturetoday/Forms/Loose Form.pdf",
    "mtmthefuturetoday/training/Intro [12:30].mp4",
    "mtmthefuturetoday/protocols/CMR Protocol.pdf",
    "testandtreat/forms/COVID/Covid Intake.pdf",
    "testandtreat/forms/Flu/Flu Intake.pdf",
    "patienthandouts/Diabetes Basics.pdf",
    "clinicalguidelines/Hypertension Guideline.pdf",
    "medicalbilling/CPT Codes.xlsx",
]


def make_entry(path, mime_type=None):
    filename = path.rsplit("/", 1)[-1]
    return CatalogEntry(
        path=path,
        filename=filename,
        title=strip_one_extension(filename),
        url=f"{BASE_URL}/storage/v1/object/public/{BUCKET}/{path}",
        mime_type=mime_type,
    )


class FakeReader:
    name = "fake"

    def __init__(self, paths, fail=False):
        self.entries = [make_entry(p) for p in paths]
        self.fail = fail
        self.calls = []

    def list_entries(self, prefix):
        self.calls.append(prefix)
        if self.fail:
            raise FetchFailed(f"boom: {prefix}", source=self.name)
        return [e for e in self.entries if e.path.lower().startswith(prefix.lower())]


@pytest.fixture
def test_config():
    return {
        "TESTING": True,
        "SECRET_KEY": "test-secret",
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "SUPABASE_URL": BASE_URL,
        "SUPABASE_ANON_KEY": "anon-key",
        "SUPABASE_BUCKET": BUCKET,
    }


@pytest.fixture
def reader():
    return FakeReader(SAMPLE_PATHS)


@pytest.fixture
def app(test_config, reader):
    app = create_app(test_config)
    app.extensions["portal.catalog"] = CatalogService(reader)
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def member(app):
    with get_session() as s:
        m = Member(id="user-1", email="pic@example.com", first_name="Pat", last_name="Lee",
                   pharmacy_name="Main Street Pharmacy")
        s.add(m)
        s.commit()
    return m


@pytest.fixture
def auth_client(client, member):
    with client.session_transaction() as sess:
        sess["_user_id"] = member.id
        sess["_fresh"] = True
        sess["sb_access_token"] = "user-jwt"
    return client
