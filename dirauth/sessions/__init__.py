"""Distributed session store for authenticated users."""

from .store import SessionStore, init_app, get_redis_session, \
    current_session

__all__ = ('SessionStore', 'init_app', 'get_redis_session',
           'current_session')
