"""
Synthesis Orchestration Components.

    - outcome.py: Request, attempt and outcome values
    - errors.py: Error codes and raised exceptions
    - selector.py: Voice identifier -> backend
    - backend.py: Adapter base class and factory
    - backends/: DashScope adapters (sambert, qwen, cosyvoice)
    - executor.py: Deadline-bounded worker execution
    - retry.py: Fixed-delay retry loop
    - sink.py: File persistence, downloads and chunk forwarding
"""
