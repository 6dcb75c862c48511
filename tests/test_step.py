"""Tests for Step definitions and contract validation."""

import pytest
from pydantic import BaseModel

from flowpatterns.core.types import ContractViolation
from flowpatterns.workflows import ExecutionContext, Step
from flowpatterns.workflows.step import validate_contract


class Numbers(BaseModel):
    """Test contract."""
    value: int


def identity(data, context):
    return data


class TestStepDefinition:
    """Tests for Step construction."""

    def test_requires_id(self):
        """Test an empty id is rejected."""
        with pytest.raises(ValueError):
            Step(id="", execute=identity)

    def test_requires_callable(self):
        """Test execute must be callable."""
        with pytest.raises(TypeError):
            Step(id="a", execute="not callable")

    def test_rejects_non_positive_timeout(self):
        """Test timeout must be positive."""
        with pytest.raises(ValueError):
            Step(id="a", execute=identity, timeout=0)

    def test_is_immutable(self):
        """Test steps cannot be modified after creation."""
        step = Step(id="a", execute=identity)
        with pytest.raises(Exception):
            step.id = "b"

    def test_repr(self):
        assert repr(Step(id="a", execute=identity)) == "Step(id='a')"


class TestStepContracts:
    """Tests for input/output validation."""

    def test_input_without_schema_passes_through(self):
        """Test unchecked steps receive data unchanged."""
        step = Step(id="a", execute=identity)
        data = {"anything": [1, 2]}
        assert step.validate_input(data) is data

    def test_input_returns_model(self):
        """Test declared input contracts produce a model instance."""
        step = Step(id="a", execute=identity, input_schema=Numbers)
        validated = step.validate_input({"value": "3"})
        assert isinstance(validated, Numbers)
        assert validated.value == 3

    def test_input_violation(self):
        """Test invalid input raises ContractViolation with details."""
        step = Step(id="a", execute=identity, input_schema=Numbers)
        with pytest.raises(ContractViolation) as exc_info:
            step.validate_input({"value": "not a number"})
        error = exc_info.value
        assert error.subject == "a"
        assert error.contract == "input"
        assert error.errors
        assert "value" in str(error)

    def test_output_model_stored_as_dict(self):
        """Test outputs are normalized to plain dicts."""
        step = Step(id="a", execute=identity, output_schema=Numbers)
        assert step.validate_output(Numbers(value=1)) == {"value": 1}
        assert step.validate_output({"value": 2}) == {"value": 2}

    def test_output_violation(self):
        """Test invalid output raises ContractViolation."""
        step = Step(id="a", execute=identity, output_schema=Numbers)
        with pytest.raises(ContractViolation) as exc_info:
            step.validate_output({"other": 1})
        assert exc_info.value.contract == "output"

    def test_output_model_without_schema(self):
        """Test a model returned by an unchecked step is still dumped."""
        step = Step(id="a", execute=identity)
        assert step.validate_output(Numbers(value=5)) == {"value": 5}

    def test_validate_contract(self):
        """Test workflow-level contracts return plain dicts."""
        assert validate_contract("wf", "trigger", None, "raw") == "raw"
        assert validate_contract("wf", "trigger", Numbers, {"value": 1}) == {"value": 1}
        with pytest.raises(ContractViolation) as exc_info:
            validate_contract("wf", "trigger", Numbers, {})
        assert exc_info.value.subject == "wf"
        assert exc_info.value.contract == "trigger"


class TestStepInvoke:
    """Tests for calling step functions."""

    @pytest.mark.asyncio
    async def test_invoke_async(self):
        """Test coroutine functions are awaited."""
        async def double(data, context):
            return data * 2

        step = Step(id="a", execute=double)
        assert await step.invoke(4, ExecutionContext(None).view()) == 8

    @pytest.mark.asyncio
    async def test_invoke_sync(self):
        """Test plain functions run and return their value."""
        step = Step(id="a", execute=lambda data, context: data + 1)
        assert await step.invoke(1, ExecutionContext(None).view()) == 2

    @pytest.mark.asyncio
    async def test_invoke_receives_context(self):
        """Test the context view is passed through."""
        step = Step(id="a", execute=lambda data, context: context.workflow_name)
        context = ExecutionContext(None, workflow_name="wf")
        assert await step.invoke(None, context.view()) == "wf"
