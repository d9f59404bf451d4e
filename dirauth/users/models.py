"""Database models for local users."""

from sqlalchemy import Column, DateTime, Enum, Integer, String
from sqlalchemy.orm import declarative_base

from .. import domain

Base = declarative_base()


class DBUser(Base):  # type: ignore
    """
    Local user account.

    +-------------+--------------+------+-----+
    | Field       | Type         | Null | Key |
    +-------------+--------------+------+-----+
    | id          | int          | NO   | PRI |
    | username    | varchar(64)  | NO   | UNI |
    | email       | varchar(255) | YES  |     |
    | user_type   | enum         | NO   |     |
    | state       | enum         | NO   |     |
    | create_time | datetime     | YES  |     |
    | update_time | datetime     | YES  |     |
    +-------------+--------------+------+-----+
    """

    __tablename__ = 'users'

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(64), nullable=False, unique=True)
    email = Column(String(255))
    user_type = Column(Enum(domain.UserType), nullable=False,
                       default=domain.UserType.GENERAL_USER)
    state = Column(Enum(domain.UserState), nullable=False,
                   default=domain.UserState.ACTIVE)
    create_time = Column(DateTime)
    update_time = Column(DateTime)

    def to_domain(self) -> domain.User:
        return domain.User(
            user_id=self.id,
            username=self.username,
            email=self.email or '',
            user_type=self.user_type,
            state=self.state,
            create_time=self.create_time,
            update_time=self.update_time
        )
