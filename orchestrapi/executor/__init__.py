"""Plan execution for the orchestrator.

- interpolation: {{step.path}} tokens resolved against earlier results
- plan_executor: dependency-ordered, memoized, fail-fast step execution
"""
