"""Tests for the per-category question graphs."""
import logging

import pytest

from survey_chatbot.categories import Category
from survey_chatbot.exceptions import GraphError
from survey_chatbot.questions import (
    END,
    START_NODE_ID,
    TOTAL_QUESTIONS,
    AnswerKind,
    Branch,
    End,
    Goto,
    QuestionNode,
    build_graph,
    iter_paths,
    resolve_transition,
    transition_targets,
    validate_graph,
)


@pytest.mark.parametrize("category", list(Category))
def test_graph_is_valid(category):
    graph = build_graph(category)
    validate_graph(graph)
    assert len(graph) == 14
    assert START_NODE_ID in graph


@pytest.mark.parametrize("category", list(Category))
def test_every_path_has_ten_questions(category):
    paths = list(iter_paths(build_graph(category)))
    # Four binary branch points.
    assert len(paths) == 16
    for path in paths:
        assert len(path) == TOTAL_QUESTIONS
        assert path[0] == "q1"
        assert path[-1] == "q10"


@pytest.mark.parametrize("category", list(Category))
def test_exactly_one_terminal(category):
    graph = build_graph(category)
    terminals = [node.id for node in graph.values() if node.is_terminal]
    assert terminals == ["q10"]


def test_employee_q5_branch_is_inverted():
    q5 = build_graph(Category.EMPLOYEE)["q5"]
    assert q5.next_id("yes, a couple of crashes") == "q6_negative"
    assert q5.next_id("no") == "q6_positive"


@pytest.mark.parametrize("category", [Category.STAKEHOLDER, Category.CUSTOMER])
def test_other_q5_branches_are_direct(category):
    q5 = build_graph(category)["q5"]
    assert q5.next_id("yes") == "q6_positive"
    assert q5.next_id("no") == "q6_negative"


def test_prompts_differ_per_category():
    prompts = {c: build_graph(c)["q1"].prompt for c in Category}
    assert len(set(prompts.values())) == 3
    assert prompts[Category.CUSTOMER] == "How satisfied are you with your purchase? (1-10)"


def test_answer_kinds():
    employee = build_graph(Category.EMPLOYEE)
    assert employee["q1"].answer_kind is AnswerKind.SHORT
    assert employee["q2_positive"].answer_kind is AnswerKind.LONG
    assert build_graph(Category.STAKEHOLDER)["q9"].answer_kind is AnswerKind.LONG
    assert AnswerKind.LONG.value == "textarea"


def test_unknown_category_falls_back_to_employee(caplog):
    with caplog.at_level(logging.WARNING):
        graph = build_graph("partner")
    assert graph == build_graph(Category.EMPLOYEE)
    assert "Unknown survey category" in caplog.text


def test_category_string_is_case_insensitive():
    assert build_graph(" Customer ") == build_graph(Category.CUSTOMER)


def test_transitions():
    assert resolve_transition(Goto("q3"), "anything") == "q3"
    assert resolve_transition(Branch("a", "b"), "9") == "a"
    assert resolve_transition(Branch("a", "b"), "2") == "b"
    assert resolve_transition(END, "whatever") is None
    assert transition_targets(Branch("a", "b")) == ("a", "b")
    assert transition_targets(END) == ()
    assert End() is END


def _node(node_id, transition):
    return QuestionNode(node_id, f"Prompt {node_id}", AnswerKind.SHORT, transition)


def test_validate_graph_missing_start():
    with pytest.raises(GraphError, match="Start node"):
        validate_graph({"q2": _node("q2", END)})


def test_validate_graph_dangling_target():
    graph = {"q1": _node("q1", Goto("q9"))}
    with pytest.raises(GraphError, match="unknown node 'q9'"):
        validate_graph(graph)


def test_validate_graph_unreachable_node():
    graph = {"q1": _node("q1", END), "orphan": _node("orphan", END)}
    with pytest.raises(GraphError, match="orphan"):
        validate_graph(graph)


def test_iter_paths_detects_cycle():
    graph = {"q1": _node("q1", Goto("q2")), "q2": _node("q2", Goto("q1"))}
    with pytest.raises(GraphError, match="Cycle"):
        list(iter_paths(graph))
