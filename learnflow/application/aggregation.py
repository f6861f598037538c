"""Сводка прогресса для дашборда.

Чистая функция от снимка учебного плана и журнала событий: ничего не
хранит между вызовами, повторный вызов с теми же данными даёт тот же
результат. Когда пересчитывать, решает вызывающая сторона.
"""
from __future__ import annotations

import math
from collections import defaultdict
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime

import structlog

from ..domain.entities import (
    ActivityItem,
    ActivityType,
    Chapter,
    ChapterProgress,
    Course,
    CourseProgress,
    Lesson,
    LessonProgress,
    ProgressEvent,
    ProgressSnapshot,
    ProgressStats,
    ProgressType,
    Task,
)
from ..domain.errors import InputShapeError, UnknownReferenceError
from .curriculum import coerce_xp
from .progress import event_time, resolve_completed_lesson_ids, resolve_completed_task_ids, resolve_latest_value

logger = structlog.get_logger()

PLACEHOLDER_MARKERS = ("dummy", "test", "sample")

# (has_tasks, learning_done) -> правило: (all_tasks_done, marked_complete) -> bool
LESSON_COMPLETION_POLICY: dict[tuple[bool, bool], Callable[[bool, bool], bool]] = {
    (True, True): lambda all_tasks_done, marked_complete: True,
    (True, False): lambda all_tasks_done, marked_complete: all_tasks_done,
    (False, True): lambda all_tasks_done, marked_complete: True,
    (False, False): lambda all_tasks_done, marked_complete: marked_complete,
}


def is_course_included(course: Course) -> bool:
    name = (course.name or "").strip()
    if not name:
        return False
    lowered = name.lower()
    if any(marker in lowered for marker in PLACEHOLDER_MARKERS):
        return False
    return bool((course.id or "").strip()) and len(course.chapters) > 0


def is_lesson_completed(has_tasks: bool, learning_done: bool, all_tasks_done: bool, marked_complete: bool) -> bool:
    rule = LESSON_COMPLETION_POLICY[(has_tasks, learning_done)]
    return rule(all_tasks_done, marked_complete)


def task_xp(task: Task) -> float:
    return coerce_xp(task.xp)


def percentage(done: int, total: int) -> int:
    if total <= 0:
        return 0
    # округление половины вверх, как на фронтенде
    return math.floor(done / total * 100 + 0.5)


@dataclass
class _Tally:
    total_lessons: int = 0
    completed_lessons: int = 0
    total_tasks: int = 0
    completed_tasks: int = 0
    total_xp: float = 0.0
    earned_xp: float = 0.0

    def add(self, other: "_Tally") -> None:
        self.total_lessons += other.total_lessons
        self.completed_lessons += other.completed_lessons
        self.total_tasks += other.total_tasks
        self.completed_tasks += other.completed_tasks
        self.total_xp += other.total_xp
        self.earned_xp += other.earned_xp

    def freeze(self) -> ProgressStats:
        return ProgressStats(
            total_lessons=self.total_lessons,
            completed_lessons=self.completed_lessons,
            total_tasks=self.total_tasks,
            completed_tasks=self.completed_tasks,
            total_xp=self.total_xp,
            earned_xp=self.earned_xp,
            completion_percentage=percentage(self.completed_lessons, self.total_lessons),
            task_completion_percentage=percentage(self.completed_tasks, self.total_tasks),
        )


def _require_id(kind: str, node_id: str | None) -> None:
    if not node_id or not str(node_id).strip():
        raise InputShapeError(kind, "missing id")


def _latest_time(events: Iterable[ProgressEvent]) -> datetime | None:
    dated = [event_time(e) for e in events if e.updated_at is not None]
    return max(dated) if dated else None


class _EventIndex:
    """Журнал, отфильтрованный по учебному плану и разложенный по ключам."""

    def __init__(self, events: list[ProgressEvent]):
        self.events = events
        self._by_key: dict[tuple, list[ProgressEvent]] = defaultdict(list)
        self._completions: dict[tuple, list[ProgressEvent]] = defaultdict(list)
        for e in events:
            self._by_key[(e.type, e.lesson_id, e.task_id)].append(e)
            if e.value is True and e.type == ProgressType.COMPLETED_TASKS:
                self._completions[(e.type, e.course_id, e.task_id)].append(e)
            elif e.value is True and e.type == ProgressType.COMPLETED_LESSONS:
                self._completions[(e.type, e.course_id, e.lesson_id)].append(e)

    def latest(self, type: ProgressType, lesson_id: str, task_id: str = ""):
        return resolve_latest_value(self._by_key.get((type, lesson_id, task_id), ()), type, lesson_id, task_id)

    def latest_time(self, type: ProgressType, lesson_id: str) -> datetime | None:
        matching = self._by_key.get((type, lesson_id, ""), ())
        if not matching:
            return None
        newest = max(matching, key=event_time)
        return event_time(newest) if newest.updated_at is not None else None

    def task_completed_at(self, course_id: str, task_id: str) -> datetime | None:
        return _latest_time(self._completions.get((ProgressType.COMPLETED_TASKS, course_id, task_id), ()))

    def lesson_marked_at(self, course_id: str, lesson_id: str) -> datetime | None:
        return _latest_time(self._completions.get((ProgressType.COMPLETED_LESSONS, course_id, lesson_id), ()))


def _known_refs(courses: list[Course]) -> dict[str, tuple[set[str], dict[str, set[str]]]]:
    # для каждого задания - уроки, в которых оно встречается
    refs = {}
    for course in courses:
        lessons, tasks = set(), {}
        for chapter in course.chapters:
            for lesson in chapter.lessons:
                lessons.add(lesson.id)
                for task in lesson.tasks:
                    tasks.setdefault(task.id, set()).add(lesson.id)
        refs[course.id] = (lessons, tasks)
    return refs


def _check_reference(event: ProgressEvent, refs: dict[str, tuple[set[str], dict[str, set[str]]]]) -> None:
    known = refs.get(event.course_id)
    if known is None:
        raise UnknownReferenceError(event.course_id, event.lesson_id, event.task_id)
    lessons, tasks = known
    if event.lesson_id and event.lesson_id not in lessons:
        raise UnknownReferenceError(event.course_id, event.lesson_id, event.task_id)
    if event.task_id:
        owners = tasks.get(event.task_id)
        if owners is None or (event.lesson_id and event.lesson_id not in owners):
            raise UnknownReferenceError(event.course_id, event.lesson_id, event.task_id)


def _filter_events(events: Iterable[ProgressEvent], courses: list[Course]) -> list[ProgressEvent]:
    refs = _known_refs(courses)
    kept, dropped = [], 0
    for event in events:
        try:
            _check_reference(event, refs)
        except UnknownReferenceError as exc:
            dropped += 1
            logger.debug("progress_event_dropped", reason=str(exc))
            continue
        kept.append(event)
    if dropped:
        logger.info("progress_events_dropped", count=dropped, kept=len(kept))
    return kept


def sort_activities(activities: Iterable[ActivityItem]) -> list[ActivityItem]:
    """Датированные - от новых к старым, затем недатированные в исходном порядке."""
    items = list(activities)
    dated = sorted((a for a in items if a.timestamp is not None), key=lambda a: a.timestamp, reverse=True)
    undated = [a for a in items if a.timestamp is None]
    return dated + undated


class _Aggregator:
    def __init__(self, index: _EventIndex):
        self.index = index
        self.by_course: list[CourseProgress] = []
        self.by_chapter: list[ChapterProgress] = []
        self.by_lesson: list[LessonProgress] = []
        self.activities: list[ActivityItem] = []

    def course(self, course: Course) -> _Tally:
        completed_tasks = resolve_completed_task_ids(self.index.events, course.id)
        marked_lessons = resolve_completed_lesson_ids(self.index.events, course.id)
        tally = _Tally()
        for chapter in course.chapters:
            try:
                _require_id("chapter", chapter.id)
            except InputShapeError as exc:
                logger.warning("curriculum_node_skipped", course_id=course.id, error=str(exc))
                continue
            tally.add(self.chapter(course, chapter, completed_tasks, marked_lessons))
        self.by_course.append(CourseProgress(course_id=course.id, course_name=course.name, stats=tally.freeze()))
        return tally

    def chapter(self, course: Course, chapter: Chapter, completed_tasks: set[str], marked_lessons: set[str]) -> _Tally:
        tally = _Tally()
        for lesson in chapter.lessons:
            try:
                _require_id("lesson", lesson.id)
            except InputShapeError as exc:
                logger.warning("curriculum_node_skipped", course_id=course.id, chapter_id=chapter.id, error=str(exc))
                continue
            tally.add(self.lesson(course, chapter, lesson, completed_tasks, marked_lessons))
        self.by_chapter.append(ChapterProgress(
            chapter_id=chapter.id,
            chapter_name=chapter.name,
            course_id=course.id,
            course_name=course.name,
            stats=tally.freeze(),
        ))
        return tally

    def lesson(self, course: Course, chapter: Chapter, lesson: Lesson,
               completed_tasks: set[str], marked_lessons: set[str]) -> _Tally:
        tally = _Tally(total_lessons=1)
        context = dict(course_id=course.id, course_name=course.name, chapter_id=chapter.id,
                       chapter_name=chapter.name, lesson_id=lesson.id, lesson_name=lesson.name)

        tasks, task_activities, task_times = [], [], []
        for task in lesson.tasks:
            try:
                _require_id("task", task.id)
            except InputShapeError as exc:
                logger.warning("curriculum_node_skipped", course_id=course.id, lesson_id=lesson.id, error=str(exc))
                continue
            tasks.append(task)
            xp = task_xp(task)
            tally.total_tasks += 1
            tally.total_xp += xp
            if task.id in completed_tasks:
                tally.completed_tasks += 1
                tally.earned_xp += xp
                completed_at = self.index.task_completed_at(course.id, task.id)
                task_times.append(completed_at)
                task_activities.append(ActivityItem(
                    id=f"task_{task.id}",
                    type=ActivityType.TASK_COMPLETED,
                    title=task.title,
                    task_id=task.id,
                    timestamp=completed_at,
                    xp=xp,
                    **context,
                ))

        has_tasks = len(tasks) > 0
        all_tasks_done = has_tasks and tally.completed_tasks == len(tasks)
        learning_done = self.index.latest(ProgressType.LEARNING_DONE, lesson.id) is True
        marked_complete = lesson.id in marked_lessons
        completed = is_lesson_completed(has_tasks, learning_done, all_tasks_done, marked_complete)

        if completed:
            tally.completed_lessons = 1
            evidence = []
            if learning_done:
                evidence.append(self.index.latest_time(ProgressType.LEARNING_DONE, lesson.id))
            if marked_complete:
                evidence.append(self.index.lesson_marked_at(course.id, lesson.id))
            if all_tasks_done:
                evidence.extend(task_times)
            dated = [ts for ts in evidence if ts is not None]
            self.activities.append(ActivityItem(
                id=f"lesson_{lesson.id}",
                type=ActivityType.LESSON_COMPLETED,
                title=lesson.name,
                timestamp=max(dated) if dated else None,
                **context,
            ))

        if self.index.latest(ProgressType.QUIZ_PASSED, lesson.id) is True:
            self.activities.append(ActivityItem(
                id=f"quiz_{lesson.id}",
                type=ActivityType.QUIZ_PASSED,
                title=f"{lesson.name} Quiz",
                timestamp=self.index.latest_time(ProgressType.QUIZ_PASSED, lesson.id),
                **context,
            ))
        self.activities.extend(task_activities)

        self.by_lesson.append(LessonProgress(
            lesson_id=lesson.id,
            lesson_name=lesson.name,
            chapter_id=chapter.id,
            course_id=course.id,
            completed=completed,
            stats=tally.freeze(),
        ))
        return tally


def aggregate_progress(
    curriculum: Iterable[Course],
    events: Iterable[ProgressEvent],
    activity_limit: int | None = None,
) -> ProgressSnapshot:
    courses = [c for c in curriculum if is_course_included(c)]
    index = _EventIndex(_filter_events(events, courses))

    aggregator = _Aggregator(index)
    overall = _Tally()
    for course in courses:
        overall.add(aggregator.course(course))

    activities = sort_activities(aggregator.activities)
    if activity_limit is not None:
        activities = activities[:activity_limit]

    return ProgressSnapshot(
        overall=overall.freeze(),
        by_course=tuple(aggregator.by_course),
        by_chapter=tuple(aggregator.by_chapter),
        by_lesson=tuple(aggregator.by_lesson),
        activities=tuple(activities),
    )
