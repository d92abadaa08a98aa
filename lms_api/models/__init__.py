"""
Pydantic models for stored documents and request/response payloads.

Stage, Subject and Course are owned elsewhere; only their collection names
are needed here so that references can be checked and resolved.
"""

STAGES = "stages"
SUBJECTS = "subjects"
COURSES = "courses"
USERS = "users"
EXAM_QUESTIONS = "exam_questions"
STAGE_CATEGORIES = "stage_categories"
