from fastapi import FastAPI, HTTPException, Depends, status, Request, Query, Response
from fastapi.responses import JSONResponse
from sqlmodel import Session, select
from typing import List, Optional
import logging
import sys
from sqlalchemy.exc import SQLAlchemyError, IntegrityError

from config import settings
from database import create_db_and_tables, get_session, engine
from models import Student, Course, Faculty, Grade, utcnow
from schemas import (
    StudentCreate, StudentUpdate, StudentResponse, StudentSummary,
    CourseCreate, CourseUpdate, CourseResponse,
    FacultyResponse,
    GradeCreate, GradeUpdate, GradeResponse,
    LeaderboardEntry, CourseEnrollment, MonthlyEnrollment, TopStudentEntry,
)
from grading import score_to_letter, calculate_gpa, average_score, format_student_name
from reporting import (
    course_enrollment_counts, enrollment_by_month, student_leaderboard,
    top_student_by_course, monthly_enrollment_rows, top_student_rows,
)
from csv_export import to_csv
from seed import seed_if_empty, reset_store

# Configure logging
handlers = [logging.StreamHandler(sys.stdout)]
if settings.LOG_FILE:
    handlers.append(logging.FileHandler(settings.LOG_FILE))

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=handlers
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_TITLE,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION
)


# Global exception handlers
@app.exception_handler(SQLAlchemyError)
async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
    """Handle database-related errors"""
    logger.error(f"Database error: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "A database error occurred. Please try again later."}
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle all uncaught exceptions"""
    logger.error(f"Unexpected error: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "An unexpected error occurred. Please contact support."}
    )


@app.on_event("startup")
def on_startup():
    """Create database tables and load the demo dataset on startup"""
    try:
        logger.info("Starting application...")
        create_db_and_tables()
        logger.info("Database tables created successfully")
        if settings.SEED_ON_STARTUP:
            with Session(engine) as session:
                seed_if_empty(session)
    except Exception as e:
        logger.error(f"Failed to initialise the store: {str(e)}", exc_info=True)
        raise


@app.get("/", tags=["Root"])
async def read_root():
    """Root endpoint"""
    logger.info("Root endpoint accessed")
    return {
        "message": f"Welcome to {settings.APP_TITLE}",
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health", tags=["Root"])
async def health_check():
    return {"status": "ok"}


@app.post("/reset", tags=["Root"])
async def reset(session: Session = Depends(get_session)):
    """Drop all records and reload the demo dataset"""
    try:
        logger.info("Resetting store to the demo dataset")
        reset_store(session)
        return {"ok": True}
    except Exception as e:
        logger.error(f"Error resetting store: {str(e)}", exc_info=True)
        session.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while resetting the store"
        )


def _get_or_404(session: Session, model, item_id: int, label: str):
    item = session.get(model, item_id)
    if not item:
        logger.warning(f"{label} not found with ID: {item_id}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{label} not found"
        )
    return item


def _page(query, skip: int, limit: Optional[int]):
    # No limit means the whole collection
    query = query.offset(skip)
    return query if limit is None else query.limit(limit)


# ============= STUDENT ENDPOINTS =============

@app.post("/students/", response_model=StudentResponse, status_code=status.HTTP_201_CREATED, tags=["Students"])
async def create_student(student: StudentCreate, session: Session = Depends(get_session)):
    """Create a new student"""
    try:
        logger.info(f"Creating student with email: {student.email}")

        # Check if email already exists
        existing_student = session.exec(select(Student).where(Student.email == student.email)).first()
        if existing_student:
            logger.warning(f"Attempted to create student with existing email: {student.email}")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already registered"
            )

        data = student.model_dump(mode="json", exclude={"created_at"})
        db_student = Student(**data, created_at=student.created_at or utcnow())
        session.add(db_student)
        session.commit()
        session.refresh(db_student)

        logger.info(f"Student created successfully with ID: {db_student.id}")
        return db_student
    except HTTPException:
        raise
    except IntegrityError as e:
        logger.error(f"Integrity error creating student: {str(e)}")
        session.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Failed to create student. Email may already exist."
        )
    except Exception as e:
        logger.error(f"Error creating student: {str(e)}", exc_info=True)
        session.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while creating the student"
        )


@app.get("/students/", response_model=List[StudentResponse], tags=["Students"])
async def read_students(skip: int = 0, limit: Optional[int] = None, session: Session = Depends(get_session)):
    """Get all students, or one page of them when limit is given"""
    try:
        logger.info(f"Fetching students with skip={skip}, limit={limit}")
        students = session.exec(_page(select(Student), skip, limit)).all()
        logger.info(f"Retrieved {len(students)} students")
        return students
    except Exception as e:
        logger.error(f"Error fetching students: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while fetching students"
        )


@app.get("/students/{student_id}", response_model=StudentResponse, tags=["Students"])
async def read_student(student_id: int, session: Session = Depends(get_session)):
    """Get a specific student by ID"""
    try:
        logger.info(f"Fetching student with ID: {student_id}")
        student = _get_or_404(session, Student, student_id, "Student")
        logger.info(f"Student found: {format_student_name(student)}")
        return student
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching student {student_id}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while fetching the student"
        )


@app.api_route("/students/{student_id}", methods=["PUT", "PATCH"], response_model=StudentResponse, tags=["Students"])
async def update_student(student_id: int, student_update: StudentUpdate, session: Session = Depends(get_session)):
    """Update a student's information"""
    try:
        logger.info(f"Updating student with ID: {student_id}")
        db_student = _get_or_404(session, Student, student_id, "Student")

        # Check email uniqueness if email is being updated
        if student_update.email and student_update.email != db_student.email:
            existing_student = session.exec(select(Student).where(Student.email == student_update.email)).first()
            if existing_student:
                logger.warning(f"Attempted to update with existing email: {student_update.email}")
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Email already registered"
                )

        # Update only provided fields
        update_data = student_update.model_dump(mode="json", exclude_unset=True)
        for key, value in update_data.items():
            setattr(db_student, key, value)

        session.add(db_student)
        session.commit()
        session.refresh(db_student)

        logger.info(f"Student updated successfully: {db_student.id}")
        return db_student
    except HTTPException:
        raise
    except IntegrityError as e:
        logger.error(f"Integrity error updating student: {str(e)}")
        session.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Failed to update student. Email may already exist."
        )
    except Exception as e:
        logger.error(f"Error updating student {student_id}: {str(e)}", exc_info=True)
        session.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while updating the student"
        )


@app.delete("/students/{student_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Students"])
async def delete_student(student_id: int, session: Session = Depends(get_session)):
    """Delete a student. Their grades are left for the caller to remove."""
    try:
        logger.info(f"Deleting student with ID: {student_id}")
        student = _get_or_404(session, Student, student_id, "Student")

        session.delete(student)
        session.commit()
        logger.info(f"Student deleted successfully: {student_id}")
        return None
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deleting student {student_id}: {str(e)}", exc_info=True)
        session.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while deleting the student"
        )


@app.get("/students/{student_id}/summary", response_model=StudentSummary, tags=["Students"])
async def read_student_summary(student_id: int, session: Session = Depends(get_session)):
    """GPA, average score and course count for one student"""
    try:
        _get_or_404(session, Student, student_id, "Student")
        grades = session.exec(select(Grade).where(Grade.student_id == student_id)).all()
        return StudentSummary(
            student_id=student_id,
            gpa=calculate_gpa(grades),
            average_score=average_score(grades),
            courses_enrolled=len(grades),
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error summarising student {student_id}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while summarising the student"
        )


# ============= COURSE ENDPOINTS =============

@app.post("/courses/", response_model=CourseResponse, status_code=status.HTTP_201_CREATED, tags=["Courses"])
async def create_course(course: CourseCreate, session: Session = Depends(get_session)):
    """Create a new course"""
    try:
        logger.info(f"Creating course: {course.code} {course.title}")
        data = course.model_dump(mode="json", exclude={"created_at"})
        db_course = Course(**data, created_at=course.created_at or utcnow())
        session.add(db_course)
        session.commit()
        session.refresh(db_course)
        logger.info(f"Course created successfully with ID: {db_course.id}")
        return db_course
    except Exception as e:
        logger.error(f"Error creating course: {str(e)}", exc_info=True)
        session.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while creating the course"
        )


@app.get("/courses/", response_model=List[CourseResponse], tags=["Courses"])
async def read_courses(skip: int = 0, limit: Optional[int] = None, session: Session = Depends(get_session)):
    """Get all courses, or one page of them when limit is given"""
    try:
        logger.info(f"Fetching courses with skip={skip}, limit={limit}")
        courses = session.exec(_page(select(Course), skip, limit)).all()
        logger.info(f"Retrieved {len(courses)} courses")
        return courses
    except Exception as e:
        logger.error(f"Error fetching courses: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while fetching courses"
        )


@app.get("/courses/{course_id}", response_model=CourseResponse, tags=["Courses"])
async def read_course(course_id: int, session: Session = Depends(get_session)):
    """Get a specific course by ID"""
    try:
        logger.info(f"Fetching course with ID: {course_id}")
        course = _get_or_404(session, Course, course_id, "Course")
        logger.info(f"Course found: {course.title}")
        return course
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching course {course_id}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while fetching the course"
        )


@app.api_route("/courses/{course_id}", methods=["PUT", "PATCH"], response_model=CourseResponse, tags=["Courses"])
async def update_course(course_id: int, course_update: CourseUpdate, session: Session = Depends(get_session)):
    """Update a course's information"""
    try:
        logger.info(f"Updating course with ID: {course_id}")
        db_course = _get_or_404(session, Course, course_id, "Course")

        # Update only provided fields
        update_data = course_update.model_dump(mode="json", exclude_unset=True)
        for key, value in update_data.items():
            setattr(db_course, key, value)

        session.add(db_course)
        session.commit()
        session.refresh(db_course)

        logger.info(f"Course updated successfully: {db_course.id}")
        return db_course
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating course {course_id}: {str(e)}", exc_info=True)
        session.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while updating the course"
        )


@app.delete("/courses/{course_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Courses"])
async def delete_course(course_id: int, session: Session = Depends(get_session)):
    """Delete a course. Its grades are left for the caller to remove."""
    try:
        logger.info(f"Deleting course with ID: {course_id}")
        course = _get_or_404(session, Course, course_id, "Course")

        session.delete(course)
        session.commit()
        logger.info(f"Course deleted successfully: {course_id}")
        return None
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deleting course {course_id}: {str(e)}", exc_info=True)
        session.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while deleting the course"
        )


# ============= FACULTY ENDPOINTS =============

@app.get("/faculty/", response_model=List[FacultyResponse], tags=["Faculty"])
async def read_faculty(session: Session = Depends(get_session)):
    """Get all faculty members"""
    try:
        faculty = session.exec(select(Faculty)).all()
        logger.info(f"Retrieved {len(faculty)} faculty members")
        return faculty
    except Exception as e:
        logger.error(f"Error fetching faculty: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while fetching faculty"
        )


@app.get("/faculty/{faculty_id}", response_model=FacultyResponse, tags=["Faculty"])
async def read_faculty_member(faculty_id: int, session: Session = Depends(get_session)):
    """Get a specific faculty member by ID"""
    try:
        logger.info(f"Fetching faculty member with ID: {faculty_id}")
        return _get_or_404(session, Faculty, faculty_id, "Faculty member")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching faculty member {faculty_id}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while fetching the faculty member"
        )


# ============= GRADE ENDPOINTS =============

@app.post("/grades/", response_model=GradeResponse, status_code=status.HTTP_201_CREATED, tags=["Grades"])
async def create_grade(grade: GradeCreate, session: Session = Depends(get_session)):
    """Enroll a student in a course with a score"""
    try:
        logger.info(f"Creating grade for student {grade.student_id} in course {grade.course_id}")

        # Verify student and course exist
        _get_or_404(session, Student, grade.student_id, "Student")
        _get_or_404(session, Course, grade.course_id, "Course")

        # One grade per student/course pair
        existing_grade = session.exec(
            select(Grade).where(
                Grade.student_id == grade.student_id,
                Grade.course_id == grade.course_id
            )
        ).first()
        if existing_grade:
            logger.warning(f"Student {grade.student_id} already enrolled in course {grade.course_id}")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Student already enrolled in this course"
            )

        created_at = grade.created_at or utcnow()
        db_grade = Grade(
            student_id=grade.student_id,
            course_id=grade.course_id,
            score=grade.score,
            letter=score_to_letter(grade.score),
            created_at=created_at,
            updated_at=grade.updated_at or created_at,
        )
        session.add(db_grade)
        session.commit()
        session.refresh(db_grade)

        logger.info(f"Grade created successfully with ID: {db_grade.id}")
        return db_grade
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating grade: {str(e)}", exc_info=True)
        session.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while creating the grade"
        )


@app.get("/grades/", response_model=List[GradeResponse], tags=["Grades"])
async def read_grades(
    student_id: Optional[int] = Query(None, description="Only grades of this student"),
    course_id: Optional[int] = Query(None, description="Only grades in this course"),
    skip: int = 0,
    limit: Optional[int] = Query(None, ge=1, description="Page size; every grade when omitted"),
    session: Session = Depends(get_session)
):
    """Get grades, optionally filtered by student and/or course"""
    try:
        logger.info(f"Fetching grades with student_id={student_id}, course_id={course_id}")
        query = select(Grade)
        if student_id is not None:
            query = query.where(Grade.student_id == student_id)
        if course_id is not None:
            query = query.where(Grade.course_id == course_id)
        grades = session.exec(_page(query, skip, limit)).all()
        logger.info(f"Retrieved {len(grades)} grades")
        return grades
    except Exception as e:
        logger.error(f"Error fetching grades: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while fetching grades"
        )


@app.get("/grades/{grade_id}", response_model=GradeResponse, tags=["Grades"])
async def read_grade(grade_id: int, session: Session = Depends(get_session)):
    """Get a specific grade by ID"""
    try:
        logger.info(f"Fetching grade with ID: {grade_id}")
        return _get_or_404(session, Grade, grade_id, "Grade")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching grade {grade_id}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while fetching the grade"
        )


@app.get("/students/{student_id}/grades", response_model=List[GradeResponse], tags=["Grades"])
async def read_student_grades(student_id: int, session: Session = Depends(get_session)):
    """Get all grades for a specific student"""
    try:
        logger.info(f"Fetching grades for student: {student_id}")
        _get_or_404(session, Student, student_id, "Student")
        grades = session.exec(select(Grade).where(Grade.student_id == student_id)).all()
        logger.info(f"Retrieved {len(grades)} grades for student {student_id}")
        return grades
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching student grades: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while fetching student grades"
        )


@app.get("/courses/{course_id}/grades", response_model=List[GradeResponse], tags=["Grades"])
async def read_course_grades(course_id: int, session: Session = Depends(get_session)):
    """Get all grades for a specific course"""
    try:
        logger.info(f"Fetching grades for course: {course_id}")
        _get_or_404(session, Course, course_id, "Course")
        grades = session.exec(select(Grade).where(Grade.course_id == course_id)).all()
        logger.info(f"Retrieved {len(grades)} grades for course {course_id}")
        return grades
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching course grades: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while fetching course grades"
        )


@app.api_route("/grades/{grade_id}", methods=["PUT", "PATCH"], response_model=GradeResponse, tags=["Grades"])
async def update_grade(grade_id: int, grade_update: GradeUpdate, session: Session = Depends(get_session)):
    """Update a grade's score; the letter follows the score"""
    try:
        logger.info(f"Updating grade with ID: {grade_id}")
        db_grade = _get_or_404(session, Grade, grade_id, "Grade")

        if grade_update.score is not None:
            db_grade.score = grade_update.score
            db_grade.letter = score_to_letter(grade_update.score)
        db_grade.updated_at = grade_update.updated_at or utcnow()

        session.add(db_grade)
        session.commit()
        session.refresh(db_grade)

        logger.info(f"Grade updated successfully: {grade_id} -> {db_grade.letter}")
        return db_grade
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating grade {grade_id}: {str(e)}", exc_info=True)
        session.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while updating the grade"
        )


@app.delete("/grades/{grade_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Grades"])
async def delete_grade(grade_id: int, session: Session = Depends(get_session)):
    """Delete a grade (unenroll a student from a course)"""
    try:
        logger.info(f"Deleting grade with ID: {grade_id}")
        grade = _get_or_404(session, Grade, grade_id, "Grade")

        session.delete(grade)
        session.commit()
        logger.info(f"Grade deleted successfully: {grade_id}")
        return None
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deleting grade {grade_id}: {str(e)}", exc_info=True)
        session.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred while deleting the grade"
        )


# ============= REPORT ENDPOINTS =============

def _csv_download(filename: str, rows: List[dict]) -> Response:
    if not rows:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return Response(
        content=to_csv(rows),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


@app.get("/reports/leaderboard", response_model=List[LeaderboardEntry], tags=["Reports"])
async def read_leaderboard(
    limit: int = Query(settings.REPORT_LEADERBOARD_SIZE, ge=1, le=100),
    session: Session = Depends(get_session)
):
    """Top students by GPA"""
    students = session.exec(select(Student)).all()
    grades = session.exec(select(Grade)).all()
    ranked = student_leaderboard(students, grades, limit)
    logger.info(f"Leaderboard generated: {len(ranked)} students")
    return [
        LeaderboardEntry(
            rank=rank,
            student_id=student.id,
            name=format_student_name(student),
            major=student.major,
            gpa=gpa,
        )
        for rank, (student, gpa) in enumerate(ranked, 1)
    ]


@app.get("/reports/enrollments/by-course", response_model=List[CourseEnrollment], tags=["Reports"])
async def read_enrollments_by_course(session: Session = Depends(get_session)):
    """Enrollment count for every course, including courses with none"""
    courses = session.exec(select(Course)).all()
    grades = session.exec(select(Grade)).all()
    return [
        CourseEnrollment(course_id=course.id, code=course.code, title=course.title, count=count)
        for course, count in course_enrollment_counts(courses, grades)
    ]


@app.get("/reports/enrollments/monthly", response_model=List[MonthlyEnrollment], tags=["Reports"])
async def read_monthly_enrollments(session: Session = Depends(get_session)):
    """Enrollments per calendar month, oldest first"""
    grades = session.exec(select(Grade)).all()
    return [MonthlyEnrollment(label=entry.label, count=entry.count) for entry in enrollment_by_month(grades)]


@app.get("/reports/enrollments/monthly/export", tags=["Reports"])
async def export_monthly_enrollments(session: Session = Depends(get_session)):
    """Monthly enrollments as a CSV download"""
    grades = session.exec(select(Grade)).all()
    rows = monthly_enrollment_rows(enrollment_by_month(grades))
    logger.info(f"Exporting {len(rows)} monthly enrollment rows")
    return _csv_download("course-enrollments-report.csv", rows)


@app.get("/reports/top-by-course", response_model=List[TopStudentEntry], tags=["Reports"])
async def read_top_by_course(session: Session = Depends(get_session)):
    """Highest-scoring student in each course that has grades"""
    courses = session.exec(select(Course)).all()
    students = session.exec(select(Student)).all()
    grades = session.exec(select(Grade)).all()
    return [TopStudentEntry(**entry._asdict()) for entry in top_student_by_course(courses, students, grades)]


@app.get("/reports/top-by-course/export", tags=["Reports"])
async def export_top_by_course(session: Session = Depends(get_session)):
    """Top student per course as a CSV download"""
    courses = session.exec(select(Course)).all()
    students = session.exec(select(Student)).all()
    grades = session.exec(select(Grade)).all()
    rows = top_student_rows(top_student_by_course(courses, students, grades))
    logger.info(f"Exporting {len(rows)} top student rows")
    return _csv_download("top-students-by-course.csv", rows)
