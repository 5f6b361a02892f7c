"""
AetherDebug Package
Runs code snippets and asks AI agents to explain errors and suggest fixes
"""

__version__ = "1.0.0"
__author__ = "AetherDebug Team"

# Import main components for easy access
from .models import (
    TokenManager, EditorSession, ExecutionResult,
    ExplainErrorInput, ExplainErrorOutput,
    SuggestCodeFixInput, SuggestCodeFixOutput,
    GenerateCodeInput, GenerateCodeOutput,
    error_explainer_agent, code_fix_agent, code_generator_agent
)
from .code_runner import run_javascript, simulate_execution
from .functions import (
    explain_error, suggest_code_fix, generate_code_from_description,
    run_code, run_code_streaming,
    clean_ai_output, extract_json_from_text,
    run_agent_with_token_limit
)

__all__ = [
    'TokenManager', 'EditorSession', 'ExecutionResult',
    'ExplainErrorInput', 'ExplainErrorOutput',
    'SuggestCodeFixInput', 'SuggestCodeFixOutput',
    'GenerateCodeInput', 'GenerateCodeOutput',
    'error_explainer_agent', 'code_fix_agent', 'code_generator_agent',
    'run_javascript', 'simulate_execution',
    'explain_error', 'suggest_code_fix', 'generate_code_from_description',
    'run_code', 'run_code_streaming',
    'clean_ai_output', 'extract_json_from_text',
    'run_agent_with_token_limit'
]
