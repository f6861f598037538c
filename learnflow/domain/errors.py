class LearnflowError(Exception):
    """Базовая ошибка домена."""


class InputShapeError(LearnflowError):
    """Узел учебного плана без обязательных полей (например, задание без id)."""

    def __init__(self, node: str, reason: str):
        super().__init__(f"{node}: {reason}")
        self.node = node
        self.reason = reason


class UnknownReferenceError(LearnflowError):
    """Событие прогресса ссылается на курс/урок/задание вне учебного плана."""

    def __init__(self, course_id: str, lesson_id: str = "", task_id: str = ""):
        super().__init__(f"unknown reference course={course_id!r} lesson={lesson_id!r} task={task_id!r}")
        self.course_id = course_id
        self.lesson_id = lesson_id
        self.task_id = task_id
