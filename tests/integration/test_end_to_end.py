"""End-to-end runs over guided templates."""

import pytest
from pydantic_ai.models.test import TestModel

from hyperflow.automation import AutomationPayload, ExecutionService, ScriptedAutomation
from hyperflow.contracts import Template
from hyperflow.generation import GenerationOrchestrator, PydanticAIClient
from hyperflow.persistence import SQLiteRunRepository
from hyperflow.runs import WorkflowRun

PROFILE_TEXT = "## Intelligence profile\nA founder who needs fast market research."

THREE_STEP = {
    "id": "founder-profile",
    "name": "Founder profile",
    "steps": [
        {
            "id": "role",
            "title": "Role",
            "components": [
                {
                    "type": "card_selector",
                    "stateKey": "role",
                    "required": True,
                    "options": [{"id": "founder", "label": "Founder"}],
                }
            ],
        },
        {
            "id": "profile",
            "title": "Profile",
            "aiEnhanced": True,
            "components": [
                {
                    "type": "ai_generate",
                    "stateKey": "intelligenceProfile",
                    "prompt": "Role: {{role}}",
                    "outputFormat": "markdown",
                    "autoTrigger": True,
                }
            ],
        },
        {
            "id": "summary",
            "title": "Summary",
            "components": [
                {"type": "info_card", "stateKey": "_recap", "content": "{{intelligenceProfile}}"}
            ],
        },
    ],
    "output": {
        "type": "profile",
        "title": "Profile - {{role}}",
        "template": "Profile for {{role}}:\n\n{{intelligenceProfile}}",
    },
}


@pytest.mark.asyncio
async def test_three_step_profile_run(make_client):
    client = make_client([PROFILE_TEXT])
    run = WorkflowRun(Template.model_validate(THREE_STEP), GenerationOrchestrator(client))

    await run.start()
    run.set_value("role", "founder")
    entered = await run.advance()

    assert entered.ok and not entered.generation_errors
    assert client.prompts == ["Role: founder"]
    assert run.values["intelligenceProfile"] == PROFILE_TEXT

    assert (await run.advance()).ok
    assert (await run.advance()).ok

    assert run.status == "completed"
    assert PROFILE_TEXT in run.state.artifact.body
    assert run.state.artifact.title == "Profile - founder"
    assert run.state.artifact.content_type == "profile"


@pytest.mark.asyncio
async def test_context_setup_wizard_with_pydantic_ai(builtin_catalog, tmp_path):
    client = PydanticAIClient(TestModel(custom_output_text=PROFILE_TEXT))
    repo = SQLiteRunRepository(tmp_path / "runs.db")
    run = WorkflowRun(
        builtin_catalog["context-setup-wizard"], GenerationOrchestrator(client), repository=repo
    )

    await run.start()
    assert (await run.advance()).ok  # welcome

    blocked = await run.advance()
    assert blocked.error.kind == "validation"
    assert blocked.error.fields == ["role"]

    run.set_value("role", "founder")
    assert (await run.advance()).ok
    run.set_value("dailyTasks", ["research", "strategy"])
    assert (await run.advance()).ok
    assert (await run.skip()).ok  # add-sources

    assert run.current_step.id == "ai-profile"
    assert run.values["intelligenceProfile"] == PROFILE_TEXT
    assert run.values["_profileDisplay"] == PROFILE_TEXT

    assert (await run.advance()).ok
    run.set_value("checkInTime", "morning")
    assert (await run.skip()).ok  # daily-ritual binds filled values
    assert (await run.advance()).ok  # complete

    assert run.status == "completed"
    body = run.state.artifact.body
    assert "**Role:** founder" in body
    assert "**Daily focus:** research, strategy" in body
    assert "**Research hours per week:** 10" in body
    assert "**Daily briefing:** morning" in body
    assert PROFILE_TEXT in body

    stored = await repo.get_run(run.run_id)
    assert stored.status == "completed"
    assert stored.artifact == run.state.artifact


@pytest.mark.asyncio
async def test_client_discovery_enterprise_branch(builtin_catalog, make_client):
    client = make_client(["# Brief for Globex"])
    run = WorkflowRun(builtin_catalog["client-discovery"], GenerationOrchestrator(client))

    await run.start()
    run.set_value("companyName", "Globex, Inc.")
    run.set_value("industry", "tech")
    run.set_value("companySize", "enterprise")
    await run.advance()
    run.set_value("painPoints", ["growth"])
    await run.advance()
    run.set_value("goals", ["expand", "hire"])
    await run.advance()
    await run.skip()  # budget

    assert run.current_step.id == "enterprise-procurement"
    run.set_value("procurementContact", "Pat")
    await run.advance()

    assert run.current_step.id == "generate-brief"
    prompt = client.prompts[0]
    assert "Company: Globex, Inc. (tech, enterprise)." in prompt
    assert "Urgency: 5/10." in prompt
    assert "Goals: expand, hire." in prompt

    await run.advance()
    assert run.state.artifact.title == "Client Brief - Globex, Inc."
    assert run.state.artifact.body == "# Brief for Globex"
    assert run.state.artifact.content_type == "source"


@pytest.mark.asyncio
async def test_automation_run_persists_record(builtin_catalog, tmp_path):
    repo = SQLiteRunRepository(tmp_path / "runs.db")
    automation = ScriptedAutomation(
        [
            "Searching Google for: hyperflow",
            AutomationPayload(type="table", title="Search Results: hyperflow", data=[{"position": 1}]),
        ]
    )
    service = ExecutionService(builtin_catalog, automation, repository=repo)

    record = await service.run_execution("google-search", {"query": "hyperflow", "count": 3})

    stored = await repo.get_execution(record.id)
    assert stored.status == "completed"
    assert stored.variables == {"query": "hyperflow", "count": 3}
    assert stored.output.columns == ["position"]
    assert 'const query = "hyperflow";' in automation.executed[0]
