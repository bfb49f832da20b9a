"""Application form configuration: field ids, labels and which answers are required."""

from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class FormField:
    id: str
    label: str
    required: bool = True
    options: List[str] = field(default_factory=list)


ESSAY_FIELDS = [
    FormField("email", "Email"),
    FormField("fullName", "Full Name"),
    FormField("phoneNumber", "Phone Number"),
    FormField("nationality", "Nationality"),
    FormField("gender", "Gender"),
    FormField("dob", "Date of Birth"),
    FormField("fieldOfStudy", "Field of Study"),
    FormField("sessionOneTitle", "Title of Session One"),
    FormField("sessionOneOutline", "Brief Outline of Session One"),
    FormField("sessionTwoTitle", "Title of Session Two"),
    FormField("sessionTwoOutline", "Brief Outline of Session Two"),
    FormField("interest", "Why are you interested in this program?"),
    FormField("aboutMe", "About Yourself"),
    FormField("tutoringExp", "Tutoring Experience"),
    FormField("dietary", "Dietary Requirements", required=False),
    FormField("additionalComments", "Additional Comments", required=False),
]

SELECTION_FIELDS = [
    FormField(
        "yearOfStudy",
        "Year of Study",
        required=False,
        options=[
            "Grade 9", "Grade 10", "Grade 11", "Grade 12",
            "University Year 1", "University Year 2", "University Year 3", "University Year 4",
            "Masters", "PhD", "Other",
        ],
    ),
    FormField(
        "subjectGroup",
        "Subject Interest",
        required=False,
        options=[
            "Computer Science", "Mathematics", "Physics",
            "Biology", "Chemistry", "Economics",
            "History", "Philosophy", "Literature", "Art",
        ],
    ),
]

# Uploads are pasted links, not files
UPLOAD_FIELDS = [
    FormField("cv", "CV / Resume", required=False),
]

# Form keys read by the snapshot and the roster
FULL_NAME_FIELD = "fullName"
EMAIL_FIELD = "email"
SCHOOL_FIELD = "school"
SCHOOL_FALLBACK_FIELD = "fieldOfStudy"
GRADE_FIELD = "yearOfStudy"
SUBJECT_FIELD = "subjectGroup"
AVAILABILITY_FIELD = "availability"
SECOND_ROUND_VIDEO_FIELD = "secondRoundVideo"


def required_fields() -> List[FormField]:
    """Fields that must be answered before submission."""
    return [f for f in ESSAY_FIELDS + SELECTION_FIELDS + UPLOAD_FIELDS if f.required]
