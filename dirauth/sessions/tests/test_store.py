"""Tests for :mod:`dirauth.sessions.store`."""

from datetime import datetime, timedelta
from unittest import TestCase, mock

from pytz import UTC
import redis

from ... import domain
from ...exceptions import SessionCreationFailed, SessionDeletionFailed, \
    Unavailable
from .. import store


class TestCreateIfAbsent(TestCase):
    """Tests for :meth:`.SessionStore.create_if_absent`."""

    def setUp(self):
        self.store = store.SessionStore('localhost', 6379, 0, 'foosecret',
                                        duration=3600, fake=True)
        self.user = domain.User(user_id=42, username='test',
                                email='test@example.com')

    def test_create(self):
        """A user without a live session gets a new one."""
        session = self.store.create_if_absent(self.user, '127.0.0.1')
        self.assertIsNotNone(session)
        self.assertEqual(session.user_id, 42)
        self.assertEqual(session.ip_address, '127.0.0.1')
        self.assertFalse(session.expired)
        self.assertGreater(session.expires, 3500)
        self.assertTrue(self.store.r.exists(session.session_id))
        self.assertGreater(self.store.r.ttl(session.session_id), 3500)

    def test_reuse(self):
        """A second login reuses the live session."""
        first = self.store.create_if_absent(self.user, '127.0.0.1')
        second = self.store.create_if_absent(self.user, '10.0.0.2')
        self.assertEqual(first.session_id, second.session_id)
        self.assertEqual(second.ip_address, '10.0.0.2')
        self.assertGreaterEqual(second.last_login_time, first.last_login_time)

        loaded = self.store.find_by_token(first.session_id)
        self.assertEqual(loaded.ip_address, '10.0.0.2')

    def test_separate_users(self):
        """Different users never share a session."""
        other = domain.User(user_id=43, username='other',
                            email='other@example.com')
        first = self.store.create_if_absent(self.user, '127.0.0.1')
        second = self.store.create_if_absent(other, '127.0.0.1')
        self.assertNotEqual(first.session_id, second.session_id)

    def test_new_session_after_expiry(self):
        """Once a session has ended the next login gets a new one."""
        first = self.store.create_if_absent(self.user, '127.0.0.1')
        self.store.delete_by_id(first.session_id)
        second = self.store.create_if_absent(self.user, '127.0.0.1')
        self.assertNotEqual(first.session_id, second.session_id)

    def test_unsaved_user(self):
        """No session is issued for a user that has not been stored."""
        user = domain.User(username='test', email='test@example.com')
        self.assertIsNone(self.store.create_if_absent(user, '127.0.0.1'))

    def test_token_collision(self):
        """A token that is already taken is not overwritten."""
        self.store.r.set('taken', 'someone else')
        with mock.patch(f'{store.__name__}.uuid') as mock_uuid:
            mock_uuid.uuid4.return_value = 'taken'
            session = self.store.create_if_absent(self.user, '127.0.0.1')
        self.assertIsNone(session)
        self.assertEqual(self.store.r.get('taken'), b'someone else')

    def test_connection_error(self):
        """Redis failures are raised, not returned."""
        self.store.r = mock.MagicMock()
        self.store.r.get.return_value = None
        self.store.r.set.side_effect = redis.exceptions.ConnectionError()
        with self.assertRaises(SessionCreationFailed):
            self.store.create_if_absent(self.user, '127.0.0.1')


class TestFindByToken(TestCase):
    """Tests for :meth:`.SessionStore.find_by_token`."""

    def setUp(self):
        self.store = store.SessionStore('localhost', 6379, 0, 'foosecret',
                                        fake=True)
        self.user = domain.User(user_id=1, username='test',
                                email='test@example.com')

    def test_find(self):
        """A stored session is loaded by its token."""
        session = self.store.create_if_absent(self.user, '127.0.0.1')
        loaded = self.store.find_by_token(session.session_id)
        self.assertEqual(loaded.session_id, session.session_id)
        self.assertEqual(loaded.user_id, 1)
        self.assertEqual(loaded.ip_address, '127.0.0.1')
        self.assertEqual(loaded.end_time, session.end_time)

    def test_missing(self):
        self.assertIsNone(self.store.find_by_token('nosuchtoken'))
        self.assertIsNone(self.store.find_by_token(''))

    def test_tampered(self):
        """A record not signed with our secret is ignored."""
        session = self.store.create_if_absent(self.user, '127.0.0.1')
        forger = store.SessionStore('localhost', 6379, 0, 'notoursecret',
                                    fake=True)
        self.store.r.set(session.session_id, forger._encode(session))
        self.assertIsNone(self.store.find_by_token(session.session_id))

        self.store.r.set(session.session_id, 'not a jwt')
        self.assertIsNone(self.store.find_by_token(session.session_id))

    def test_stored_under_other_key(self):
        """A session copied to another key is not honored."""
        session = self.store.create_if_absent(self.user, '127.0.0.1')
        self.store.r.set('copied', self.store.r.get(session.session_id))
        self.assertIsNone(self.store.find_by_token('copied'))

    def test_expired(self):
        """A session whose end time has passed is not honored."""
        now = datetime.now(tz=UTC)
        session = domain.Session(session_id='old', user_id=1,
                                 ip_address='127.0.0.1',
                                 last_login_time=now - timedelta(hours=3),
                                 end_time=now - timedelta(hours=1))
        self.store.r.set('old', self.store._encode(session))
        self.assertIsNone(self.store.find_by_token('old'))

    def test_unavailable(self):
        self.store.r = mock.MagicMock()
        self.store.r.get.side_effect = redis.exceptions.ConnectionError()
        with self.assertRaises(Unavailable):
            self.store.find_by_token('abc')


class TestDelete(TestCase):
    """Tests for deleting sessions."""

    def setUp(self):
        self.store = store.SessionStore('localhost', 6379, 0, 'foosecret',
                                        fake=True)
        self.user = domain.User(user_id=7, username='test',
                                email='test@example.com')

    def test_delete_by_id(self):
        session = self.store.create_if_absent(self.user, '127.0.0.1')
        self.store.delete_by_id(session.session_id)
        self.assertIsNone(self.store.find_by_token(session.session_id))

    def test_expire_for_user(self):
        """Ending a user's session removes the session and its index."""
        session = self.store.create_if_absent(self.user, '127.0.0.1')
        self.store.expire_for_user(7)
        self.assertIsNone(self.store.find_by_token(session.session_id))
        self.assertFalse(self.store.r.exists('user-session:7'))
        self.store.expire_for_user(7)

    def test_delete_failed(self):
        self.store.r = mock.MagicMock()
        self.store.r.delete.side_effect = redis.exceptions.ConnectionError()
        with self.assertRaises(SessionDeletionFailed):
            self.store.delete_by_id('abc')
        with self.assertRaises(SessionDeletionFailed):
            self.store.expire_for_user(7)


class TestGetRedisSession(TestCase):
    """Tests for :func:`.store.get_redis_session`."""

    def test_fake_from_config(self):
        """Stores built from config share one fake server."""
        config = {'REDIS_FAKE': '1', 'JWT_SECRET': 'foosecret',
                  'SESSION_DURATION': '60'}
        first = store.get_redis_session(mock.MagicMock(config=config))
        second = store.get_redis_session(mock.MagicMock(config=config))
        user = domain.User(user_id=99, username='shared', email='s@e.org')
        session = first.create_if_absent(user, '127.0.0.1')
        try:
            self.assertEqual(second.find_by_token(session.session_id),
                             session)
        finally:
            first.expire_for_user(99)

    def test_redis_from_config(self):
        """A plain redis connection is opened by default."""
        config = {'REDIS_HOST': 'redis.example.org', 'REDIS_PORT': '6380',
                  'JWT_SECRET': 'foosecret'}
        with mock.patch(f'{store.__name__}.redis') as mock_redis:
            store.get_redis_session(mock.MagicMock(config=config))
        mock_redis.StrictRedis.assert_called_once_with(
            host='redis.example.org', port=6380, db=0, password=None
        )
