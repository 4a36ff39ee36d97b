from sqlalchemy import Column, Date, ForeignKey, Integer, String
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class UserRecord(Base):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    tasks = relationship("TaskRecord", back_populates="owner")


class TaskRecord(Base):
    __tablename__ = "todos"

    # seq keeps insertion order; id is the public identifier
    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(32), unique=True, index=True, nullable=False)
    content = Column(String, nullable=False)
    priority = Column(String, nullable=False, default="LOW")
    date = Column(Date, nullable=False)
    status = Column(String, nullable=False, default="TODO")
    owner_id = Column(String(32), ForeignKey("users.id"), nullable=False, index=True)
    owner = relationship("UserRecord", back_populates="tasks")
