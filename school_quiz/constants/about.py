"""Static metadata describing SchoolQuiz."""

APP_NAME = "SchoolQuiz"
APP_VERSION = "0.1"
APP_LICENSE = "MIT License"
APP_ABOUT_TEXT = (
    "SchoolQuiz hosts learning modules with timed quizzes for students. "
    "It runs monitored quiz sessions, auto-scores multiple choice answers "
    "and combines quiz results with manual grades into report cards."
)
