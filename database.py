import logging
from typing import List, Optional

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from errors import DuplicateEmail, StorageError
from models import Base, TaskRecord, UserRecord
from schemas import Task, User

logger = logging.getLogger(__name__)


def make_session_factory(database_url: str) -> sessionmaker:
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    engine = create_engine(database_url, connect_args=connect_args)

    # Create tables
    Base.metadata.create_all(bind=engine)
    logger.info("SQL store ready url=%s", engine.url.render_as_string(hide_password=True))

    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def _to_user(row: UserRecord) -> User:
    return User(id=row.id, name=row.name, email=row.email, password_hash=row.password_hash)


def _to_task(row: TaskRecord) -> Task:
    return Task(
        id=row.id,
        content=row.content,
        priority=row.priority,
        date=row.date,
        status=row.status,
        owner_id=row.owner_id,
    )


class _SqlRepository:
    def __init__(self, session_factory: sessionmaker):
        self.SessionLocal = session_factory

    def _commit(self, db):
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Database write failed: %s", e)
            raise StorageError(f"Could not save data store: {e}")


class SqlUserRepository(_SqlRepository):
    def get(self, user_id: str) -> Optional[User]:
        db = self.SessionLocal()
        try:
            row = db.get(UserRecord, user_id)
            return _to_user(row) if row else None
        finally:
            db.close()

    def get_by_email(self, email: str) -> Optional[User]:
        db = self.SessionLocal()
        try:
            row = db.query(UserRecord).filter(UserRecord.email == email).first()
            return _to_user(row) if row else None
        finally:
            db.close()

    def add(self, user: User) -> None:
        db = self.SessionLocal()
        try:
            db.add(UserRecord(**user.model_dump()))
            db.commit()
        except IntegrityError:
            # unique email constraint
            db.rollback()
            logger.info("Registration rejected by unique constraint: %s", user.email)
            raise DuplicateEmail()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Database write failed: %s", e)
            raise StorageError(f"Could not save data store: {e}")
        finally:
            db.close()


def _task_columns(task: Task) -> dict:
    return {
        "id": task.id,
        "content": task.content,
        "priority": task.priority.value,
        "date": task.date,
        "status": task.status.value,
        "owner_id": task.owner_id,
    }


class SqlTaskRepository(_SqlRepository):
    def _query(self, db, task_id: str):
        return db.query(TaskRecord).filter(TaskRecord.id == task_id)

    def list(self) -> List[Task]:
        db = self.SessionLocal()
        try:
            return [_to_task(row) for row in db.query(TaskRecord).order_by(TaskRecord.seq).all()]
        finally:
            db.close()

    def get(self, task_id: str) -> Optional[Task]:
        db = self.SessionLocal()
        try:
            row = self._query(db, task_id).first()
            return _to_task(row) if row else None
        finally:
            db.close()

    def add(self, task: Task) -> None:
        db = self.SessionLocal()
        try:
            db.add(TaskRecord(**_task_columns(task)))
            self._commit(db)
        finally:
            db.close()

    def save(self, task: Task) -> None:
        db = self.SessionLocal()
        try:
            row = self._query(db, task.id).first()
            if row is None:
                db.add(TaskRecord(**_task_columns(task)))
            else:
                for key, value in _task_columns(task).items():
                    setattr(row, key, value)
            self._commit(db)
        finally:
            db.close()

    def delete(self, task_id: str) -> None:
        db = self.SessionLocal()
        try:
            self._query(db, task_id).delete()
            self._commit(db)
        finally:
            db.close()
