"""
Authentication gateway for identities held in an external directory.

Credentials are checked against the directory (:mod:`dirauth.directory`).
Users that pass are matched to, or provisioned as, local users
(:mod:`dirauth.users`) and issued a session (:mod:`dirauth.sessions`).
:mod:`dirauth.auth` ties these together.
"""
