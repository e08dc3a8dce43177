from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List
from datetime import datetime
from enum import Enum


class YearLevel(str, Enum):
    """Academic year, in progression order"""
    FRESHMAN = "Freshman"
    SOPHOMORE = "Sophomore"
    JUNIOR = "Junior"
    SENIOR = "Senior"
    GRADUATE = "Graduate"


class KeyValue(BaseModel):
    """Free-form named field attached to a student or course"""
    key: str = Field(..., min_length=1, description="Field name")
    value: str = Field(..., min_length=1, description="Field value")


# Student Schemas
class StudentBase(BaseModel):
    """Base schema for student with common attributes"""
    first_name: str = Field(..., min_length=1, max_length=100, description="Student's first name")
    last_name: str = Field(..., min_length=1, max_length=100, description="Student's last name")
    email: EmailStr = Field(..., description="Student's email address")
    year: YearLevel = Field(..., description="Academic year")
    major: str = Field(..., min_length=1, max_length=100, description="Declared major")
    notes: Optional[str] = Field(None, description="Free-text notes")
    attributes: List[KeyValue] = Field(default_factory=list, description="Additional attributes, in order")


class StudentCreate(StudentBase):
    """Schema for creating a new student"""
    created_at: Optional[datetime] = Field(None, description="Set by the caller; defaults to now")


class StudentUpdate(BaseModel):
    """Schema for updating a student (all fields optional)"""
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    year: Optional[YearLevel] = None
    major: Optional[str] = Field(None, min_length=1, max_length=100)
    notes: Optional[str] = None
    attributes: Optional[List[KeyValue]] = None


class StudentResponse(StudentBase):
    """Schema for student response"""
    id: int
    created_at: datetime

    class Config:
        from_attributes = True


class StudentSummary(BaseModel):
    """Progress snapshot for one student"""
    student_id: int
    gpa: float
    average_score: int
    courses_enrolled: int


# Faculty Schemas
class FacultyResponse(BaseModel):
    """Schema for faculty response"""
    id: int
    name: str
    email: str
    department: str
    title: str

    class Config:
        from_attributes = True


# Course Schemas
class CourseBase(BaseModel):
    """Base schema for course with common attributes"""
    code: str = Field(..., min_length=1, max_length=20, description="Catalog code, e.g. CS101")
    title: str = Field(..., min_length=1, max_length=200, description="Course title")
    department: str = Field(..., min_length=1, max_length=100, description="Owning department")
    credits: int = Field(..., ge=1, le=10, description="Number of credits")
    description: Optional[str] = Field(None, max_length=1000, description="Course description")
    faculty_ids: List[int] = Field(default_factory=list, description="Assigned faculty members")
    course_metadata: List[KeyValue] = Field(default_factory=list, description="Additional metadata, in order")


class CourseCreate(CourseBase):
    """Schema for creating a new course"""
    created_at: Optional[datetime] = Field(None, description="Set by the caller; defaults to now")


class CourseUpdate(BaseModel):
    """Schema for updating a course (all fields optional)"""
    code: Optional[str] = Field(None, min_length=1, max_length=20)
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    department: Optional[str] = Field(None, min_length=1, max_length=100)
    credits: Optional[int] = Field(None, ge=1, le=10)
    description: Optional[str] = Field(None, max_length=1000)
    faculty_ids: Optional[List[int]] = None
    course_metadata: Optional[List[KeyValue]] = None


class CourseResponse(CourseBase):
    """Schema for course response"""
    id: int
    created_at: datetime

    class Config:
        from_attributes = True


# Grade Schemas
class GradeCreate(BaseModel):
    """Schema for enrolling a student with a score; the letter is derived"""
    student_id: int = Field(..., description="Student ID")
    course_id: int = Field(..., description="Course ID")
    score: float = Field(..., ge=0, le=100, description="Score between 0 and 100")
    created_at: Optional[datetime] = Field(None, description="Set by the caller; defaults to now")
    updated_at: Optional[datetime] = Field(None, description="Set by the caller; defaults to created_at")


class GradeUpdate(BaseModel):
    """Schema for updating a grade's score"""
    score: Optional[float] = Field(None, ge=0, le=100, description="Score between 0 and 100")
    updated_at: Optional[datetime] = Field(None, description="Set by the caller; defaults to now")


class GradeResponse(BaseModel):
    """Schema for grade response"""
    id: int
    student_id: int
    course_id: int
    score: float
    letter: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# Report Schemas
class LeaderboardEntry(BaseModel):
    rank: int
    student_id: int
    name: str
    major: str
    gpa: float


class CourseEnrollment(BaseModel):
    course_id: int
    code: str
    title: str
    count: int


class MonthlyEnrollment(BaseModel):
    label: str
    count: int


class TopStudentEntry(BaseModel):
    course: str
    code: str
    student: str
    score: float
