"""Branching question graphs for each respondent category.

Every category uses the same ten-step ladder. Odd steps (q1, q3, q5, q7) are
rating or yes/no questions that branch on :func:`classify` into a
``_positive`` or ``_negative`` follow-up. The follow-ups funnel back into the
next odd step. q9 leads to q10, and q10 ends the survey.

Node ids are stored as answer keys by the submission store, so they must not
change.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple, Union

from survey_chatbot.analysis.sentiment import is_positive
from survey_chatbot.categories import Category, resolve_category
from survey_chatbot.exceptions import GraphError

START_NODE_ID = "q1"
TOTAL_QUESTIONS = 10


class AnswerKind(str, Enum):
    """Advisory input hint for the front end."""

    SHORT = "text"
    LONG = "textarea"


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Goto:
    """Unconditional move to ``next_id``."""

    next_id: str


@dataclass(frozen=True)
class Branch:
    """Pick ``on_positive`` or ``on_negative`` from the answer's polarity."""

    on_positive: str
    on_negative: str


class End:
    """Terminal sentinel: no further questions."""

    _instance: Optional["End"] = None

    def __new__(cls) -> "End":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "END"


END = End()

Transition = Union[Goto, Branch, End]


def resolve_transition(transition: Transition, answer: str) -> Optional[str]:
    """Return the next node id for *answer*, or *None* at the terminal."""
    if isinstance(transition, Goto):
        return transition.next_id
    if isinstance(transition, Branch):
        return transition.on_positive if is_positive(answer) else transition.on_negative
    return None


def transition_targets(transition: Transition) -> Tuple[str, ...]:
    """Return every node id *transition* can lead to."""
    if isinstance(transition, Goto):
        return (transition.next_id,)
    if isinstance(transition, Branch):
        return (transition.on_positive, transition.on_negative)
    return ()


@dataclass(frozen=True)
class QuestionNode:
    """One question in a category's graph."""

    id: str
    prompt: str
    answer_kind: AnswerKind
    transition: Transition

    def next_id(self, answer: str) -> Optional[str]:
        return resolve_transition(self.transition, answer)

    @property
    def is_terminal(self) -> bool:
        return self.transition is END


# ---------------------------------------------------------------------------
# Question data
# ---------------------------------------------------------------------------

_SHORT = AnswerKind.SHORT
_LONG = AnswerKind.LONG

_QUESTION_SETS: Dict[Category, List[QuestionNode]] = {
    Category.EMPLOYEE: [
        QuestionNode(
            "q1",
            "How would you rate your overall experience with our products? (1-10)",
            _SHORT,
            Branch("q2_positive", "q2_negative"),
        ),
        QuestionNode(
            "q2_positive",
            "That's great! Which features do you find most valuable in your daily work?",
            _LONG,
            Goto("q3"),
        ),
        QuestionNode(
            "q2_negative",
            "We understand. What are the main challenges you face with our products?",
            _LONG,
            Goto("q3"),
        ),
        QuestionNode(
            "q3",
            "How effective is our product training and documentation? (1-10)",
            _SHORT,
            Branch("q4_positive", "q4_negative"),
        ),
        QuestionNode(
            "q4_positive",
            "Excellent! How do you typically use the training resources?",
            _LONG,
            Goto("q5"),
        ),
        QuestionNode(
            "q4_negative",
            "What improvements would make the training more helpful for you?",
            _LONG,
            Goto("q5"),
        ),
        # A "yes" here means problems, so the arms are swapped.
        QuestionNode(
            "q5",
            "Have you encountered any technical issues recently?",
            _LONG,
            Branch(on_positive="q6_negative", on_negative="q6_positive"),
        ),
        QuestionNode(
            "q6_positive",
            "Great! How well does the product integrate with your existing workflow? (1-10)",
            _SHORT,
            Goto("q7"),
        ),
        QuestionNode(
            "q6_negative",
            "Please describe the technical issues so we can address them.",
            _LONG,
            Goto("q7"),
        ),
        QuestionNode(
            "q7",
            "Would you recommend our products to colleagues? (1-10)",
            _SHORT,
            Branch("q8_positive", "q8_negative"),
        ),
        QuestionNode(
            "q8_positive",
            "Thank you! What specific aspects would you highlight in your recommendation?",
            _LONG,
            Goto("q9"),
        ),
        QuestionNode(
            "q8_negative",
            "What improvements would make you more likely to recommend us?",
            _LONG,
            Goto("q9"),
        ),
        QuestionNode(
            "q9",
            "How long have you been working with our products?",
            _SHORT,
            Goto("q10"),
        ),
        QuestionNode(
            "q10",
            "Any final suggestions or feedback for our product team?",
            _LONG,
            END,
        ),
    ],
    Category.STAKEHOLDER: [
        QuestionNode(
            "q1",
            "How aligned are our products with current market demands? (1-10)",
            _SHORT,
            Branch("q2_positive", "q2_negative"),
        ),
        QuestionNode(
            "q2_positive",
            "Excellent! Which product lines show the strongest market position?",
            _LONG,
            Goto("q3"),
        ),
        QuestionNode(
            "q2_negative",
            "What market gaps should we prioritize addressing?",
            _LONG,
            Goto("q3"),
        ),
        QuestionNode(
            "q3",
            "How effective is our product innovation strategy? (1-10)",
            _SHORT,
            Branch("q4_positive", "q4_negative"),
        ),
        QuestionNode(
            "q4_positive",
            "Great! What innovation areas should we expand further?",
            _LONG,
            Goto("q5"),
        ),
        QuestionNode(
            "q4_negative",
            "What changes would strengthen our innovation approach?",
            _LONG,
            Goto("q5"),
        ),
        QuestionNode(
            "q5",
            "Do you see competitive advantages in our current product portfolio?",
            _LONG,
            Branch("q6_positive", "q6_negative"),
        ),
        QuestionNode(
            "q6_positive",
            "Which competitive advantages should we emphasize most?",
            _LONG,
            Goto("q7"),
        ),
        QuestionNode(
            "q6_negative",
            "How can we better differentiate from competitors?",
            _LONG,
            Goto("q7"),
        ),
        QuestionNode(
            "q7",
            "How sustainable is our product roadmap for long-term growth? (1-10)",
            _SHORT,
            Branch("q8_positive", "q8_negative"),
        ),
        QuestionNode(
            "q8_positive",
            "Which aspects of the roadmap are most promising?",
            _LONG,
            Goto("q9"),
        ),
        QuestionNode(
            "q8_negative",
            "What strategic pivots should we consider?",
            _LONG,
            Goto("q9"),
        ),
        QuestionNode(
            "q9",
            "What emerging market trends should influence our product development?",
            _LONG,
            Goto("q10"),
        ),
        QuestionNode(
            "q10",
            "Any strategic recommendations for our product portfolio?",
            _LONG,
            END,
        ),
    ],
    Category.CUSTOMER: [
        QuestionNode(
            "q1",
            "How satisfied are you with your purchase? (1-10)",
            _SHORT,
            Branch("q2_positive", "q2_negative"),
        ),
        QuestionNode(
            "q2_positive",
            "Wonderful! What do you love most about the product?",
            _LONG,
            Goto("q3"),
        ),
        QuestionNode(
            "q2_negative",
            "We apologize for your experience. What disappointed you?",
            _LONG,
            Goto("q3"),
        ),
        QuestionNode(
            "q3",
            "How easy was the product to use? (1-10)",
            _SHORT,
            Branch("q4_positive", "q4_negative"),
        ),
        QuestionNode(
            "q4_positive",
            "Great! Which features did you find most intuitive?",
            _LONG,
            Goto("q5"),
        ),
        QuestionNode(
            "q4_negative",
            "What aspects were confusing or difficult?",
            _LONG,
            Goto("q5"),
        ),
        QuestionNode(
            "q5",
            "Did the product meet your expectations?",
            _LONG,
            Branch("q6_positive", "q6_negative"),
        ),
        QuestionNode(
            "q6_positive",
            "Excellent! How does it compare to similar products you've tried?",
            _LONG,
            Goto("q7"),
        ),
        QuestionNode(
            "q6_negative",
            "What features or improvements would have met your expectations?",
            _LONG,
            Goto("q7"),
        ),
        QuestionNode(
            "q7",
            "How likely are you to recommend our product? (1-10)",
            _SHORT,
            Branch("q8_positive", "q8_negative"),
        ),
        QuestionNode(
            "q8_positive",
            "Thank you! Who would you recommend this product to?",
            _LONG,
            Goto("q9"),
        ),
        QuestionNode(
            "q8_negative",
            "What would make you more likely to recommend us?",
            _LONG,
            Goto("q9"),
        ),
        QuestionNode(
            "q9",
            "How was your experience with our customer support? (1-10)",
            _SHORT,
            Goto("q10"),
        ),
        QuestionNode(
            "q10",
            "Any final thoughts or suggestions for improvement?",
            _LONG,
            END,
        ),
    ],
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def build_graph(category: Union[Category, str, None]) -> Dict[str, QuestionNode]:
    """Return the question graph for *category* keyed by node id.

    Unknown categories fall back to the employee graph (see
    :func:`survey_chatbot.categories.resolve_category`).
    """
    resolved = resolve_category(category)
    return {node.id: node for node in _QUESTION_SETS[resolved]}


def validate_graph(graph: Dict[str, QuestionNode], start_id: str = START_NODE_ID) -> None:
    """Check *graph* for a start node, dangling targets and unreachable nodes.

    Raises
    ------
    GraphError
        If any of these structural checks fails.
    """
    if start_id not in graph:
        raise GraphError(f"Start node '{start_id}' missing from graph.")

    for node in graph.values():
        for target in transition_targets(node.transition):
            if target not in graph:
                raise GraphError(f"Node '{node.id}' points at unknown node '{target}'.")

    seen = {start_id}
    stack = [start_id]
    while stack:
        for target in transition_targets(graph[stack.pop()].transition):
            if target not in seen:
                seen.add(target)
                stack.append(target)

    unreachable = sorted(set(graph) - seen)
    if unreachable:
        raise GraphError(f"Unreachable nodes: {', '.join(unreachable)}")


def iter_paths(
    graph: Dict[str, QuestionNode], start_id: str = START_NODE_ID
) -> Iterator[List[str]]:
    """Yield every start-to-terminal path through *graph* as a list of node ids.

    Raises :class:`GraphError` if a path revisits a node.
    """
    stack: List[List[str]] = [[start_id]]
    while stack:
        path = stack.pop()
        node = graph[path[-1]]
        targets = transition_targets(node.transition)
        if not targets:
            yield path
            continue
        for target in reversed(targets):
            if target in path:
                raise GraphError(f"Cycle detected at '{target}' via {path}")
            stack.append(path + [target])
