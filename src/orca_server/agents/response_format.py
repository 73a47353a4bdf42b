"""Response-format instructions appended to agent system prompts."""

import json

from orca_server.agents.config import AgentConfig

RESPONSE_FORMAT_HEADER = "## Response Format (REQUIRED)"

# Response types an agent may send back for each request type it accepts
RESPONSE_RECIPROCAL: dict[str, list[str]] = {
    "question": ["answer"],
    "task": ["success", "failure", "checkpoint"],
}

TYPE_GUIDANCE: dict[str, str] = {
    "answer": "Use when providing information, completing analysis, or returning results.",
    "checkpoint": "Use when human supervision is required before continuing.",
    "failure": "Use when the task cannot be completed due to an error or blocker.",
    "plan": "Use when proposing a multi-step execution plan that requires approval.",
    "question": "Use when you need clarification or user input to proceed.",
    "success": "Use when a task has been completed successfully with details of what was done.",
}

RESPONSE_EXAMPLES: dict[str, dict] = {
    "answer": {
        "type": "answer",
        "content": "The implementation uses...",
        "sources": [
            {
                "type": "file",
                "ref": "src/index.py",
                "title": "Main entry",
                "excerpt": "def main()...",
            }
        ],
    },
    "checkpoint": {
        "type": "checkpoint",
        "prompt": "The agent is requesting to ... Continue?",
    },
    "failure": {
        "type": "failure",
        "code": "AGENT_ERROR",
        "message": "Unable to complete the task due to...",
        "cause": "Missing required configuration...",
    },
    "plan": {
        "type": "plan",
        "goal": "Implement feature X with tests",
        "steps": [
            {"description": "Create the data model in src/models/...", "agent": "coder"},
            {"description": "Write unit tests...", "agent": "tester"},
        ],
        "assumptions": ["Using existing auth middleware"],
        "files_touched": ["src/models/user.py"],
        "verification": ["Run test suite: pytest"],
        "risks": ["Migration may fail on production data - test with staging first"],
    },
    "question": {
        "type": "question",
        "question": "Should the API return paginated results or the full list?",
        "options": ["Paginated", "Full list"],
        "blocking": True,
    },
    "success": {
        "type": "success",
        "summary": "This task was completed successfully!",
        "artifacts": ["src/auth/login.py"],
        "verification": ["All tests passing"],
        "notes": ["There are markdown table inconsistencies"],
    },
}


def response_types_for_agent(agent_id: str, agent: AgentConfig) -> list[str]:
    """Compute the response types an agent is allowed to emit, in stable order."""
    types: list[str] = []

    def add(response_type: str) -> None:
        if response_type not in types:
            types.append(response_type)

    for accepted in agent.accepts or []:
        for response_type in RESPONSE_RECIPROCAL.get(accepted, []):
            add(response_type)

    if agent.specialist:
        for response_type in ("success", "failure", "question"):
            add(response_type)
    if agent.supervised:
        add("checkpoint")
    if agent_id == "planner":
        add("plan")

    return types


def build_response_format_instructions(agent_id: str, agent: AgentConfig) -> str:
    """Render the response-format section for an agent's prompt.

    Examples carry the agent's own id, since response envelopes require it.

    Returns:
        Markdown instructions, or an empty string for the coordinator or an
        agent with no response types
    """
    if agent_id == "orca":
        return ""

    response_types = response_types_for_agent(agent_id, agent)
    if not response_types:
        return ""

    type_list = ", ".join(f"`{t}`" for t in response_types)
    guidance = "\n".join(f"- **{t}**: {TYPE_GUIDANCE[t]}" for t in response_types)
    examples = "\n\n".join(
        f"### {t}\n{json.dumps(_with_agent_id(RESPONSE_EXAMPLES[t], agent_id), indent=2)}"
        for t in response_types
    )

    return "\n\n".join(
        [
            RESPONSE_FORMAT_HEADER,
            "You MUST respond with a valid JSON object. Nothing else.",
            f"**Allowed response types:** {type_list}",
            "### Type Selection Guidance",
            guidance,
            "### JSON Examples",
            examples,
        ]
    )


def _with_agent_id(example: dict, agent_id: str) -> dict:
    if example["type"] == "failure":
        return example
    rest = {key: value for key, value in example.items() if key != "type"}
    return {"type": example["type"], "agent_id": agent_id, **rest}
