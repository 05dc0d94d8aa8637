# src/smart_tasks/assistant/heuristics.py

from __future__ import annotations

"""
Keyword-heuristic task assistant.

No ML here: keyword tables and weighted linear scores. Every function is pure
(the clock is injectable), TaskAssistant is a thin stateless facade so the
app can inject it like any other collaborator.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Iterable, Sequence

from ..tasks.task_models import Category, Task, TaskId, utc_now

WORK_KEYWORDS = (
    "meeting", "email", "report", "presentation", "project", "deadline",
    "client", "team", "office", "work", "business", "budget", "analysis",
    "development", "code", "testing", "deployment", "review", "document",
)
PERSONAL_KEYWORDS = (
    "grocery", "shopping", "family", "home", "personal", "health",
    "doctor", "gym", "exercise", "friend", "hobby", "vacation",
    "clean", "cook", "read", "movie", "birthday", "anniversary",
)
URGENT_KEYWORDS = (
    "urgent", "asap", "emergency", "critical", "important", "deadline",
    "overdue", "priority", "immediately", "rush", "fix", "bug", "issue",
)

COMPLEXITY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "simple": ("call", "email", "text", "quick", "simple", "easy"),
    "medium": ("review", "update", "check", "organize", "plan"),
    "complex": ("develop", "create", "build", "design", "analyze", "research", "write"),
}
COMPLEXITY_HOURS = {"simple": 1, "medium": 4, "complex": 24}

HIGH_PRIORITY_WORDS = ("urgent", "important", "critical", "asap", "deadline")
COMPLEX_WORDS = ("develop", "create", "design", "analyze", "research")

POSITIVE_WORDS = (
    "good", "great", "excellent", "amazing", "wonderful", "fantastic",
    "happy", "excited", "looking forward", "enjoy", "love", "like",
)
NEGATIVE_WORDS = (
    "bad", "terrible", "awful", "hate", "dislike", "stressed",
    "worried", "anxious", "difficult", "hard", "challenging", "overwhelming",
)
SENTIMENT_URGENT_WORDS = ("urgent", "critical", "emergency", "asap", "immediately", "rush")

CATEGORY_COMPLETION_RATES = {Category.URGENT: 0.85, Category.WORK: 0.75, Category.PERSONAL: 0.65}
PREDICTION_WEIGHTS = {"category": 0.3, "complexity": 0.2, "deadline": 0.3, "user_pattern": 0.2}

BREAKDOWN_PATTERNS: tuple[tuple[tuple[str, ...], tuple[str, ...]], ...] = (
    (
        ("project", "develop", "create", "build"),
        (
            "Plan and research requirements",
            "Create initial design/outline",
            "Implement core functionality",
            "Test and review",
            "Finalize and deliver",
        ),
    ),
    (
        ("meeting", "presentation"),
        (
            "Prepare agenda/outline",
            "Gather necessary materials",
            "Practice/rehearse",
            "Conduct meeting/presentation",
            "Follow up on action items",
        ),
    ),
    (
        ("report", "document", "write"),
        (
            "Research and gather information",
            "Create outline/structure",
            "Write first draft",
            "Review and edit",
            "Finalize and submit",
        ),
    ),
    (
        ("organize", "clean", "sort"),
        (
            "Assess current state",
            "Plan organization system",
            "Remove unnecessary items",
            "Organize remaining items",
            "Maintain system",
        ),
    ),
)


def _text(title: str, description: str = "") -> str:
    return f"{title} {description}".lower()


def _count(text: str, words: Iterable[str]) -> int:
    return sum(1 for w in words if w in text)


def _hours_until(deadline: datetime, now: datetime) -> float:
    return (deadline - now).total_seconds() / 3600.0


# ---- result types ----


@dataclass(slots=True, frozen=True)
class DeadlineEstimate:
    deadline: datetime
    complexity: str
    estimated_hours: int
    confidence: float


@dataclass(slots=True, frozen=True)
class Suggestion:
    title: str
    description: str
    category: Category
    reason: str
    confidence: float


@dataclass(slots=True, frozen=True)
class CompletionPrediction:
    probability: int
    factors: dict[str, float]
    recommendation: str


@dataclass(slots=True, frozen=True)
class Sentiment:
    sentiment: str
    confidence: int
    scores: dict[str, int]


@dataclass(slots=True, frozen=True)
class Subtask:
    title: str
    description: str
    category: Category
    parent_task_id: TaskId
    order: int


@dataclass(slots=True, frozen=True)
class Insight:
    type: str
    title: str
    description: str
    actionable: bool
    action: str | None = None


# ---- heuristics ----


def categorize_task(title: str, description: str = "") -> Category:
    """Urgent keywords weigh double; ties prefer urgent, then work; no match -> personal."""
    text = _text(title, description)
    scores = {
        Category.WORK: _count(text, WORK_KEYWORDS),
        Category.PERSONAL: _count(text, PERSONAL_KEYWORDS),
        Category.URGENT: _count(text, URGENT_KEYWORDS) * 2,
    }
    best = max(scores.values())
    if best == 0:
        return Category.PERSONAL
    if scores[Category.URGENT] == best:
        return Category.URGENT
    if scores[Category.WORK] == best:
        return Category.WORK
    return Category.PERSONAL


def estimate_deadline(title: str, description: str = "", *, now: datetime | None = None) -> DeadlineEstimate:
    now = now or utc_now()
    text = _text(title, description)

    complexity = "medium"
    max_matches = 0
    for level, words in COMPLEXITY_KEYWORDS.items():
        matches = _count(text, words)
        if matches > max_matches:
            max_matches = matches
            complexity = level

    hours = COMPLEXITY_HOURS[complexity]
    return DeadlineEstimate(
        deadline=now + timedelta(hours=hours),
        complexity=complexity,
        estimated_hours=hours,
        confidence=0.8 if max_matches > 0 else 0.5,
    )


def calculate_priority(task: Task, *, now: datetime | None = None) -> float:
    """0..100: deadline proximity + category + priority words + age (older tasks get a small boost)."""
    now = now or utc_now()
    score = 0.0

    if task.deadline is not None:
        hours_left = _hours_until(task.deadline, now)
        if hours_left < 2:
            score += 50
        elif hours_left < 24:
            score += 30
        elif hours_left < 168:
            score += 10

    if task.category == Category.URGENT:
        score += 40
    elif task.category == Category.WORK:
        score += 20
    else:
        score += 10

    score += _count(_text(task.title, task.description), HIGH_PRIORITY_WORDS) * 15

    age_days = (now - task.created_at).total_seconds() / 86400.0
    score += min(age_days * 2, 20)

    return min(max(score, 0.0), 100.0)


def generate_suggestions(tasks: Sequence[Task], *, now: datetime | None = None, limit: int = 3) -> list[Suggestion]:
    now = now or utc_now()
    suggestions: list[Suggestion] = []

    if any(t.category == Category.WORK for t in tasks):
        suggestions.append(
            Suggestion(
                title="Review daily goals",
                description="Take a moment to review and adjust your daily objectives",
                category=Category.WORK,
                reason="Based on your work tasks pattern",
                confidence=0.7,
            )
        )

    if sum(1 for t in tasks if not t.completed) > 5:
        suggestions.append(
            Suggestion(
                title="Prioritize task backlog",
                description="Review and prioritize your pending tasks",
                category=Category.WORK,
                reason="You have many pending tasks",
                confidence=0.9,
            )
        )

    local_hour = now.astimezone().hour
    if local_hour < 10:
        suggestions.append(
            Suggestion(
                title="Plan your day",
                description="Set priorities and goals for today",
                category=Category.PERSONAL,
                reason="Good morning routine",
                confidence=0.8,
            )
        )
    if local_hour > 17:
        suggestions.append(
            Suggestion(
                title="Review today's progress",
                description="Reflect on what you accomplished today",
                category=Category.PERSONAL,
                reason="End of day routine",
                confidence=0.7,
            )
        )

    last_week = now - timedelta(days=7)
    if sum(1 for t in tasks if t.created_at > last_week) < 3:
        suggestions.append(
            Suggestion(
                title="Set weekly goals",
                description="Define your objectives for this week",
                category=Category.PERSONAL,
                reason="Low activity detected",
                confidence=0.6,
            )
        )

    return suggestions[: max(0, int(limit))]


def predict_completion(
    task: Task,
    history: Sequence[Task] = (),
    *,
    now: datetime | None = None,
) -> CompletionPrediction:
    now = now or utc_now()
    factors: dict[str, float] = {}

    factors["category"] = CATEGORY_COMPLETION_RATES.get(task.category, 0.7)

    if task.deadline is not None:
        hours_left = _hours_until(task.deadline, now)
        if hours_left < 2:
            factors["deadline"] = 0.9
        elif hours_left < 24:
            factors["deadline"] = 0.8
        else:
            factors["deadline"] = 0.6
    else:
        factors["deadline"] = 0.5

    if history:
        factors["user_pattern"] = sum(1 for t in history if t.completed) / len(history)
    else:
        factors["user_pattern"] = 0.7

    text = _text(task.title, task.description)
    factors["complexity"] = 0.6 if any(w in text for w in COMPLEX_WORDS) else 0.8

    prediction = sum(factors[k] * w for k, w in PREDICTION_WEIGHTS.items())
    if prediction > 0.7:
        recommendation = "high"
    elif prediction > 0.5:
        recommendation = "medium"
    else:
        recommendation = "low"

    return CompletionPrediction(
        probability=round(prediction * 100),
        factors=factors,
        recommendation=recommendation,
    )


def analyze_sentiment(text: str) -> Sentiment:
    lower = (text or "").lower()
    positive = _count(lower, POSITIVE_WORDS)
    negative = _count(lower, NEGATIVE_WORDS)
    urgent = _count(lower, SENTIMENT_URGENT_WORDS)

    sentiment = "neutral"
    confidence = 0.5
    if urgent > 0:
        sentiment, confidence = "urgent", 0.8
    elif positive > negative:
        sentiment, confidence = "positive", positive / (positive + negative + 1)
    elif negative > positive:
        sentiment, confidence = "negative", negative / (positive + negative + 1)

    return Sentiment(
        sentiment=sentiment,
        confidence=round(confidence * 100),
        scores={"positive": positive, "negative": negative, "urgent": urgent},
    )


def break_down_task(task: Task) -> list[Subtask]:
    text = _text(task.title, task.description)

    for triggers, steps in BREAKDOWN_PATTERNS:
        if any(trigger in text for trigger in triggers):
            return [
                Subtask(
                    title=step,
                    description=f'Step {i + 1} of "{task.title}"',
                    category=task.category,
                    parent_task_id=task.id,
                    order=i,
                )
                for i, step in enumerate(steps)
            ]

    generic = (
        (f"Start: {task.title}", "Begin working on this task"),
        (f"Review progress: {task.title}", "Check progress and adjust if needed"),
        (f"Complete: {task.title}", "Finish and verify completion"),
    )
    return [
        Subtask(title=title, description=desc, category=task.category, parent_task_id=task.id, order=i)
        for i, (title, desc) in enumerate(generic)
    ]


def generate_insights(
    tasks: Sequence[Task],
    *,
    timeframe_days: int = 30,
    now: datetime | None = None,
) -> list[Insight]:
    now = now or utc_now()
    start = now - timedelta(days=timeframe_days)
    recent = [t for t in tasks if t.created_at >= start]
    insights: list[Insight] = []

    rate = (sum(1 for t in recent if t.completed) / len(recent)) * 100 if recent else 0.0
    if rate > 80:
        insights.append(
            Insight(
                type="positive",
                title="Excellent Productivity!",
                description=f"You've completed {rate:.1f}% of your tasks. Keep up the great work!",
                actionable=False,
            )
        )
    elif rate < 50:
        insights.append(
            Insight(
                type="improvement",
                title="Room for Improvement",
                description=f"Your completion rate is {rate:.1f}%. Consider breaking down large tasks.",
                actionable=True,
                action="Break down complex tasks into smaller steps",
            )
        )

    distribution: dict[Category, int] = {}
    for t in recent:
        distribution[t.category] = distribution.get(t.category, 0) + 1
    if distribution:
        dominant, count = max(distribution.items(), key=lambda kv: kv[1])
        insights.append(
            Insight(
                type="info",
                title="Task Focus Analysis",
                description=f"Most of your tasks ({count}) are in the {dominant.value} category.",
                actionable=False,
            )
        )

    overdue = [t for t in recent if not t.completed and t.deadline is not None and t.deadline < now]
    if overdue:
        plural = "s" if len(overdue) > 1 else ""
        insights.append(
            Insight(
                type="warning",
                title="Overdue Tasks Alert",
                description=f"You have {len(overdue)} overdue task{plural}. Address these first.",
                actionable=True,
                action="Review and reschedule overdue tasks",
            )
        )

    return insights


@dataclass(slots=True)
class TaskAssistant:
    """Injectable facade over the heuristics (clock override for tests/demos)."""

    clock: Any = field(default=utc_now)

    def now(self) -> datetime:
        return self.clock()

    def categorize_task(self, title: str, description: str = "") -> Category:
        return categorize_task(title, description)

    def estimate_deadline(self, title: str, description: str = "") -> DeadlineEstimate:
        return estimate_deadline(title, description, now=self.now())

    def calculate_priority(self, task: Task) -> float:
        return calculate_priority(task, now=self.now())

    def generate_suggestions(self, tasks: Sequence[Task], limit: int = 3) -> list[Suggestion]:
        return generate_suggestions(tasks, now=self.now(), limit=limit)

    def predict_completion(self, task: Task, history: Sequence[Task] = ()) -> CompletionPrediction:
        return predict_completion(task, history, now=self.now())

    def analyze_sentiment(self, text: str) -> Sentiment:
        return analyze_sentiment(text)

    def break_down_task(self, task: Task) -> list[Subtask]:
        return break_down_task(task)

    def generate_insights(self, tasks: Sequence[Task], timeframe_days: int = 30) -> list[Insight]:
        return generate_insights(tasks, timeframe_days=timeframe_days, now=self.now())

    def rank_by_priority(self, tasks: Iterable[Task]) -> list[tuple[Task, float]]:
        scored = [(t, self.calculate_priority(t)) for t in tasks]
        scored.sort(key=lambda pair: pair[1], reverse=True)
        return scored
