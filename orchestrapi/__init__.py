"""OrchestrAPI - agentic question answering over a REST API.

Retrieves API documentation, has a language model plan a multi-step
sequence of API calls, executes the plan and streams a synthesized
answer:
- Tools (capability catalog, invocation)
- Executor (dependency-ordered plan execution, value interpolation)
- Orchestrator (planning, validation and fallback, streaming pipeline)
"""

__version__ = "0.1.0"
