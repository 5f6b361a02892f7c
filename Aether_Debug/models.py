import json
import os
import uuid
from datetime import datetime
from typing import Optional

import tiktoken
from dotenv import load_dotenv, find_dotenv
from pydantic import BaseModel, ConfigDict, Field
from agents import Agent, OpenAIChatCompletionsModel, AsyncOpenAI, ModelSettings, set_tracing_disabled

# Load environment variables
_ = load_dotenv(find_dotenv())
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
GEMINI_BASE_URL = os.getenv("GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta/openai/")
AETHER_MODEL = os.getenv("AETHER_MODEL", "gemini-2.0-flash")
MAX_INPUT_TOKENS = int(os.getenv("MAX_INPUT_TOKENS", "8000"))

# Trace export requires an OpenAI key
set_tracing_disabled(True)

# Initialize external client and model
external_client: AsyncOpenAI = AsyncOpenAI(
    api_key=GEMINI_API_KEY,
    base_url=GEMINI_BASE_URL,
)

gemini_llm_model: OpenAIChatCompletionsModel = OpenAIChatCompletionsModel(
    model=AETHER_MODEL,
    openai_client=external_client
)


class TokenManager:
    """Token accounting for prompt inputs"""

    def __init__(self, max_tokens_per_minute=60000, max_input_tokens=MAX_INPUT_TOKENS):
        self.max_tokens_per_minute = max_tokens_per_minute
        self.max_input_tokens = max_input_tokens
        self.tokens_used = 0
        self.start_time = datetime.now()
        self.tokenizer = None

    def get_tokenizer(self):
        # Encodings are fetched on first use, so loading is deferred
        if self.tokenizer is None:
            try:
                self.tokenizer = tiktoken.get_encoding("cl100k_base")
            except Exception:
                self.tokenizer = tiktoken.get_encoding("gpt2")
        return self.tokenizer

    def count_tokens(self, text):
        """Count tokens in text"""
        try:
            if text is None:
                return 0
            if isinstance(text, dict):
                text = json.dumps(text)
            return len(self.get_tokenizer().encode(str(text)))
        except Exception:
            return max(1, len(str(text)) // 4)

    def ensure_within_limit(self, text):
        """Raise ValueError when a prompt input is too large to send"""
        tokens = self.count_tokens(text)
        if tokens > self.max_input_tokens:
            raise ValueError(
                f"Input too large for AI analysis: {tokens} tokens (limit {self.max_input_tokens})"
            )
        return tokens

    def add_tokens(self, tokens):
        """Add tokens to the per-minute usage counter"""
        current_time = datetime.now()
        if (current_time - self.start_time).total_seconds() >= 60:
            self.tokens_used = 0
            self.start_time = current_time
            print("✅ Token counter reset - New minute started")
        self.tokens_used += tokens
        print(f"📊 Tokens used this minute: {self.tokens_used}/{self.max_tokens_per_minute}")


# -------------------
# Prompt input/output schemas
# -------------------

class ExplainErrorInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    code: str = Field(description="The code that produced the error.")
    language: str = Field(description="The programming language of the code.")
    error_message: str = Field(alias="errorMessage", description="The error message produced by the code.")


class ExplainErrorOutput(BaseModel):
    explanation: str = Field(description="A natural-language explanation of the error.")


class SuggestCodeFixInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    code: str = Field(description="The code containing the error.")
    language: str = Field(description="The programming language of the code.")
    error_description: str = Field(alias="errorDescription", description="A description of the error in the code.")


class SuggestCodeFixOutput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    suggested_fix: str = Field(alias="suggestedFix", description="The suggested code fix to address the identified error.")
    explanation: str = Field(description="An explanation of why the suggested fix is appropriate.")


class GenerateCodeInput(BaseModel):
    description: str = Field(description="A detailed description of the code to be generated.")
    language: str = Field(description="The programming language for the code.")


class GenerateCodeOutput(BaseModel):
    code: str = Field(description="The generated code based on the description.")


class ExecutionResult(BaseModel):
    """Outcome of a local or simulated run"""
    output: str
    error_message: str = ""
    error_description: str = ""
    failed: bool = False


# -------------------
# Editor session state
# -------------------

LANGUAGES = [
    {"value": "javascript", "label": "JavaScript"},
    {"value": "python", "label": "Python"},
    {"value": "java", "label": "Java"},
    {"value": "csharp", "label": "C#"},
    {"value": "cpp", "label": "C++"},
    {"value": "html", "label": "HTML"},
    {"value": "css", "label": "CSS"},
    {"value": "typescript", "label": "TypeScript"},
]

LANGUAGE_VALUES = [lang["value"] for lang in LANGUAGES]

DEFAULT_BUGGY_JS_CODE = """function calculateSum(arr) {
  let sum = 0;
  // Error: Off-by-one, should be i < arr.length
  // This will try to access arr[arr.length] which is undefined
  for (let i = 0; i <= arr.length; i++) {
    sum += arr[i];
  }
  return sum;
}

const numbers = [1, 2, 3, 4, 5];
console.log('Calculating sum for:', numbers);
const result = calculateSum(numbers);
console.log('Result:', result); // This line might not be reached if error is thrown
"""

DEFAULT_BUGGY_PYTHON_CODE = """# Python buggy code example
def divide(x, y):
  # Potential ZeroDivisionError if y is 0
  result = x / y
  return result

print(divide(10, 2)) # Example of a working call
# print(divide(10, 0)) # Example of a call that would cause an error
"""


def default_code_for(language: str) -> str:
    """Starter code shown when a language is selected"""
    if language == "javascript":
        return DEFAULT_BUGGY_JS_CODE
    if language == "python":
        return DEFAULT_BUGGY_PYTHON_CODE
    return (
        f"// Enter your {language} code here...\n"
        "// Note: Live execution is only supported for JavaScript.\n"
        "// For other languages, this will be a simulated run for AI analysis."
    )


class EditorSession:
    """State behind one open editor page"""

    def __init__(self, language: str = "javascript", session_id: Optional[str] = None):
        if language not in LANGUAGE_VALUES:
            raise ValueError(f"Unsupported language: {language}")
        self.session_id = session_id or str(uuid.uuid4())
        self.language = language
        self.code = default_code_for(language)
        self.output = ""
        self.error_explanation = ""
        self.suggested_fix = ""
        self.is_loading = False
        self.created_at = datetime.now()
        self.last_active = self.created_at

    def touch(self):
        self.last_active = datetime.now()

    def set_code(self, code: str):
        """Replace the editor contents"""
        self.code = code

    def select_language(self, language: str):
        """Switch language and reset every panel to its default"""
        if language not in LANGUAGE_VALUES:
            raise ValueError(f"Unsupported language: {language}")
        self.language = language
        self.code = default_code_for(language)
        self.clear_results()

    def clear_results(self):
        self.output = ""
        self.error_explanation = ""
        self.suggested_fix = ""

    def get_state(self):
        return {
            "session_id": self.session_id,
            "language": self.language,
            "code": self.code,
            "output": self.output,
            "error_explanation": self.error_explanation,
            "suggested_fix": self.suggested_fix,
            "is_loading": self.is_loading,
        }


def make_notice(title: str, description: str, variant: str = "default"):
    """User-facing notification shown by the editor page"""
    return {"title": title, "description": description, "variant": variant}


# -------------------
# All Agents Defined Here
# -------------------

from .prompts import error_explainer_prompt, code_fix_prompt, code_generator_prompt


gemini_model_settings = ModelSettings(
    temperature=0.2,
)

error_explainer_agent = Agent(
    name="ErrorExplainer",
    instructions=error_explainer_prompt,
    model=gemini_llm_model,
    model_settings=gemini_model_settings
)

code_fix_agent = Agent(
    name="CodeFixSuggester",
    instructions=code_fix_prompt,
    model=gemini_llm_model,
    model_settings=gemini_model_settings
)

code_generator_agent = Agent(
    name="CodeGenerator",
    instructions=code_generator_prompt,
    model=gemini_llm_model
)
