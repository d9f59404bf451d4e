import pytest

from dirauth import factory, users
from dirauth.sessions import store


@pytest.fixture()
def app(tmp_path):
    app = factory.create_web_app(
        create_db=True,
        USER_DATABASE_URI=f'sqlite:///{tmp_path}/users.db',
        REDIS_FAKE='1',
        JWT_SECRET='foosecret',
        SESSION_DURATION='3600',
    )
    yield app
    with app.app_context():
        store.current_session().r.flushall()


@pytest.fixture()
def user_store(app):
    with app.app_context():
        yield users.current_store()
