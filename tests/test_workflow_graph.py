"""Tests for the Workflow builder and commit-time graph validation."""

import pytest
from pydantic import BaseModel

from flowpatterns.core.types import GraphValidationError, WorkflowNotCommittedError
from flowpatterns.workflows import (
    ConditionalNode,
    FieldRef,
    ForkNode,
    JoinNode,
    ResultMapping,
    SequentialNode,
    Step,
    SubWorkflowNode,
    Workflow,
)


class CityInput(BaseModel):
    """Test trigger contract."""
    city: str


def make_step(step_id: str) -> Step:
    return Step(id=step_id, execute=lambda data, context: data)


def always(context):
    return True


class TestWorkflowBuilder:
    """Tests for building graphs."""

    def test_requires_name(self):
        with pytest.raises(ValueError):
            Workflow(name="")

    def test_sequential(self):
        """Test step() appends sequential nodes in order."""
        a, b = make_step("a"), make_step("b")
        workflow = Workflow(name="wf").step(a).step(b).commit()
        assert [type(n) for n in workflow.graph.nodes] == [SequentialNode, SequentialNode]
        assert workflow.graph.step_ids() == ("a", "b")

    def test_parallel_then_join(self):
        """Test after([...]).step() creates a join node."""
        a, b, c = make_step("a"), make_step("b"), make_step("c")
        workflow = Workflow(name="wf").parallel([a, b]).after([a, "b"]).step(c).commit()
        fork, join = workflow.graph.nodes
        assert isinstance(fork, ForkNode)
        assert isinstance(join, JoinNode)
        assert join.after == ("a", "b")
        assert fork.id == "fork(a, b)"

    def test_conditional_branches(self):
        """Test if_/then/else_ builds one conditional node."""
        a, b, c, d = (make_step(i) for i in "abcd")
        workflow = (
            Workflow(name="wf")
            .step(a)
            .if_(always)
            .then(b)
            .else_()
            .then(c)
            .step(d)
            .commit()
        )
        nodes = workflow.graph.nodes
        assert len(nodes) == 3
        conditional = nodes[1]
        assert isinstance(conditional, ConditionalNode)
        assert conditional.id == "if(always)"
        assert [n.id for n in conditional.then_branch] == ["b"]
        assert [n.id for n in conditional.else_branch] == ["c"]
        assert workflow.graph.step_ids() == ("a", "b", "c", "d")

    def test_conditional_closed_by_commit(self):
        a, b = make_step("a"), make_step("b")
        workflow = Workflow(name="wf").step(a).if_(always).then(b).commit()
        assert isinstance(workflow.graph.nodes[-1], ConditionalNode)
        assert workflow.graph.nodes[-1].else_branch == ()

    def test_then_with_workflow(self):
        """Test then() embeds a committed workflow."""
        inner = Workflow(name="inner").step(make_step("x")).commit()
        outer = (
            Workflow(name="outer")
            .step(make_step("a"))
            .then(inner, variables={"value": FieldRef("a")})
            .commit()
        )
        node = outer.graph.nodes[1]
        assert isinstance(node, SubWorkflowNode)
        assert node.id == "inner"
        assert node.variables == {"value": FieldRef("a")}

    def test_then_rejects_other_targets(self):
        with pytest.raises(GraphValidationError):
            Workflow(name="wf").then("not a step")


class TestCommit:
    """Tests for commit() validation and idempotence."""

    def test_commit_is_idempotent(self):
        """Test committing twice returns the same workflow and graph."""
        workflow = Workflow(name="wf").step(make_step("a"))
        assert workflow.commit() is workflow
        graph = workflow.graph
        assert workflow.commit() is workflow
        assert workflow.graph is graph
        assert workflow.graph.step_ids() == ("a",)

    def test_builder_frozen_after_commit(self):
        workflow = Workflow(name="wf").step(make_step("a")).commit()
        with pytest.raises(GraphValidationError):
            workflow.step(make_step("b"))
        with pytest.raises(GraphValidationError):
            workflow.parallel([make_step("c")])

    def test_graph_requires_commit(self):
        workflow = Workflow(name="wf").step(make_step("a"))
        assert not workflow.committed
        with pytest.raises(WorkflowNotCommittedError):
            workflow.graph

    def test_empty_workflow(self):
        with pytest.raises(GraphValidationError, match="no steps"):
            Workflow(name="wf").commit()

    def test_duplicate_ids(self):
        with pytest.raises(GraphValidationError, match="duplicate step id 'a'"):
            Workflow(name="wf").step(make_step("a")).step(make_step("a")).commit()

    def test_duplicate_ids_across_branches(self):
        """Test ids are unique across both branches of a conditional."""
        with pytest.raises(GraphValidationError, match="duplicate"):
            (
                Workflow(name="wf")
                .if_(always)
                .then(make_step("a"))
                .else_()
                .then(make_step("a"))
                .commit()
            )

    def test_trigger_is_reserved(self):
        with pytest.raises(GraphValidationError, match="reserved"):
            Workflow(name="wf").step(make_step("trigger")).commit()

    def test_variable_must_reference_earlier_step(self):
        a, b = make_step("a"), make_step("b")
        with pytest.raises(GraphValidationError, match="not declared before"):
            Workflow(name="wf").step(a, variables={"x": FieldRef(b)}).step(b).commit()

    def test_variable_unknown_step(self):
        with pytest.raises(GraphValidationError, match="unknown step 'nope'"):
            Workflow(name="wf").step(make_step("a"), variables={"x": FieldRef("nope")}).commit()

    def test_variable_may_reference_trigger(self):
        workflow = (
            Workflow(name="wf", trigger_schema=CityInput)
            .step(make_step("a"), variables={"city": FieldRef("trigger", "city")})
            .commit()
        )
        assert workflow.committed

    def test_join_requires_declared_predecessors(self):
        with pytest.raises(GraphValidationError):
            Workflow(name="wf").after(["a"]).step(make_step("b")).commit()

    def test_join_cannot_wait_on_trigger(self):
        with pytest.raises(GraphValidationError):
            Workflow(name="wf").step(make_step("a")).after(["trigger"]).step(make_step("b")).commit()

    def test_join_rejects_variables(self):
        a = make_step("a")
        with pytest.raises(GraphValidationError, match="variables"):
            Workflow(name="wf").step(a).after([a]).step(make_step("b"), variables={"x": FieldRef(a)})

    def test_after_must_be_followed_by_step(self):
        a = make_step("a")
        with pytest.raises(GraphValidationError):
            Workflow(name="wf").step(a).after([a]).commit()
        with pytest.raises(GraphValidationError):
            Workflow(name="wf").step(a).after([a]).parallel([make_step("b")])

    def test_empty_fork(self):
        with pytest.raises(GraphValidationError, match="at least one step"):
            Workflow(name="wf").parallel([]).commit()

    def test_else_without_if(self):
        with pytest.raises(GraphValidationError):
            Workflow(name="wf").else_()

    def test_else_twice(self):
        with pytest.raises(GraphValidationError):
            Workflow(name="wf").if_(always).then(make_step("a")).else_().else_()

    def test_else_branch_cannot_bind_then_branch_step(self):
        """Test a binding may not reach into the other branch of a conditional."""
        a, b = make_step("a"), make_step("b")
        with pytest.raises(GraphValidationError, match="not declared before"):
            (
                Workflow(name="wf")
                .if_(always)
                .then(a)
                .else_()
                .then(b, variables={"x": FieldRef(a, "x")})
                .commit()
            )

    def test_else_branch_cannot_feed_sub_workflow_from_then_branch(self):
        inner = Workflow(name="inner").step(make_step("x")).commit()
        a = make_step("a")
        with pytest.raises(GraphValidationError):
            (
                Workflow(name="wf")
                .if_(always)
                .then(a)
                .else_()
                .then(inner, variables={"value": FieldRef(a)})
                .commit()
            )

    def test_branches_may_bind_steps_declared_before_conditional(self):
        """Test both branches see earlier steps, and later steps see both branches."""
        fetch, a, b = make_step("fetch"), make_step("a"), make_step("b")
        workflow = (
            Workflow(name="wf")
            .step(fetch)
            .if_(always)
            .then(a, variables={"x": FieldRef(fetch)})
            .else_()
            .then(b, variables={"x": FieldRef(fetch)})
            .step(make_step("c"), variables={"y": FieldRef(b)})
            .commit()
        )
        assert workflow.graph.step_ids() == ("fetch", "a", "b", "c")

    def test_empty_then_branch(self):
        with pytest.raises(GraphValidationError, match="empty then branch"):
            Workflow(name="wf").if_(always).else_().then(make_step("a")).commit()

    def test_predicate_must_be_callable(self):
        with pytest.raises(GraphValidationError):
            Workflow(name="wf").if_(True)

    def test_sub_workflow_must_be_committed(self):
        inner = Workflow(name="inner").step(make_step("x"))
        with pytest.raises(GraphValidationError, match="must be committed"):
            Workflow(name="outer").then(inner).commit()

    def test_result_mapping_unknown_step(self):
        workflow = Workflow(
            name="wf",
            result=ResultMapping(mapping={"out": FieldRef("missing")}),
        ).step(make_step("a"))
        with pytest.raises(GraphValidationError, match="result field 'out'"):
            workflow.commit()

    def test_failed_commit_leaves_workflow_uncommitted(self):
        workflow = Workflow(name="wf").step(make_step("a")).step(make_step("a"))
        with pytest.raises(GraphValidationError):
            workflow.commit()
        assert not workflow.committed

    @pytest.mark.asyncio
    async def test_run_requires_commit(self):
        workflow = Workflow(name="wf").step(make_step("a"))
        with pytest.raises(WorkflowNotCommittedError):
            await workflow.run({})


class TestVisualization:
    """Tests for visualize() and repr."""

    def test_visualize(self):
        a, b, c = make_step("a"), make_step("b"), make_step("c")
        workflow = (
            Workflow(name="wf", trigger_schema=CityInput)
            .step(a)
            .if_(always)
            .then(b, variables={"x": FieldRef(a, "value")})
            .else_()
            .then(c)
            .commit()
        )
        text = workflow.visualize()
        assert "Workflow: wf" in text
        assert "Trigger: CityInput" in text
        assert "Steps: 3 (a, b, c)" in text
        assert "Committed: yes" in text
        assert "<if(always)>" in text
        assert "[b] (x <- a:value)" in text
        assert text.splitlines()[-1] == "  END"
        assert str(workflow) == text

    def test_visualize_uncommitted(self):
        workflow = Workflow(name="wf").parallel([make_step("a"), make_step("b")])
        text = workflow.visualize()
        assert "Committed: no" in text
        assert "Trigger: any" in text
        assert "<fork> [a] | [b]" in text

    def test_repr(self):
        workflow = Workflow(name="wf").step(make_step("a"))
        assert repr(workflow) == "Workflow(name='wf', nodes=1, committed=False)"
        workflow.commit()
        assert repr(workflow) == "Workflow(name='wf', nodes=1, committed=True)"
