import pytest

from domain.config import AppConfig
from domain.models import Admin, Profile, Student
from services.persistence import DocumentStore


@pytest.fixture
def config(tmp_path):
    return AppConfig(
        deployment_id='test-app',
        backend_credentials={'token_secret': 'test-secret'},
        data_dir=str(tmp_path / 'data'),
        retry_delay=0,
        bcrypt_rounds=4,
    )


@pytest.fixture
def store(config):
    return DocumentStore(config.data_dir)


@pytest.fixture
def student():
    return Profile(uid='u_student', name='Jane Wanjiru', role=Student('S1001'), email='jane@example.com')


@pytest.fixture
def admin():
    return Profile(uid='u_admin', name='Registrar', role=Admin(), email='registrar@example.com')
