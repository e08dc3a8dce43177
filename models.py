from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON
from typing import Optional, List, Dict
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Student(SQLModel, table=True):
    """Student model for database"""
    id: Optional[int] = Field(default=None, primary_key=True)
    first_name: str = Field(index=True, min_length=1, max_length=100)
    last_name: str = Field(index=True, min_length=1, max_length=100)
    email: str = Field(unique=True, index=True)
    year: str = Field(index=True)
    major: str = Field(max_length=100)
    notes: Optional[str] = Field(default=None)
    attributes: List[Dict[str, str]] = Field(default_factory=list, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utcnow)


class Faculty(SQLModel, table=True):
    """Faculty member; read-only through the API"""
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, max_length=100)
    email: str = Field(unique=True, index=True)
    department: str = Field(max_length=100)
    title: str = Field(max_length=100)


class Course(SQLModel, table=True):
    """Course model for database"""
    id: Optional[int] = Field(default=None, primary_key=True)
    code: str = Field(index=True, min_length=1, max_length=20)
    title: str = Field(index=True, min_length=1, max_length=200)
    department: str = Field(max_length=100)
    credits: int = Field(ge=1, le=10)
    description: Optional[str] = Field(default=None, max_length=1000)
    faculty_ids: List[int] = Field(default_factory=list, sa_column=Column(JSON))
    course_metadata: List[Dict[str, str]] = Field(default_factory=list, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utcnow)


class Grade(SQLModel, table=True):
    """A student's enrollment in a course together with its current score"""
    id: Optional[int] = Field(default=None, primary_key=True)
    student_id: int = Field(foreign_key="student.id", index=True)
    course_id: int = Field(foreign_key="course.id", index=True)
    score: float = Field(ge=0, le=100)
    letter: str = Field(max_length=2)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
