"""Built-in catalog of analysis backends and the prompt templates they share."""

from copilot.models.backend import BackendDescriptor, Provider

DEFAULT_MODEL_ID = "builtin-analyzer"

BUILTIN_MODELS: list[BackendDescriptor] = [
    BackendDescriptor(
        id="openai-gpt-3.5",
        name="OpenAI GPT-3.5 Turbo",
        provider=Provider.openai,
        endpoint="https://api.openai.com/v1/chat/completions",
        model_name="gpt-3.5-turbo",
        max_tokens=4096,
        temperature=0.3,
        requires_credential=True,
        icon="🤖",
        description="Fast, efficient model for flow analysis",
        capabilities=["code-analysis", "recommendations", "security-check"],
    ),
    BackendDescriptor(
        id="openai-gpt-4",
        name="OpenAI GPT-4",
        provider=Provider.openai,
        endpoint="https://api.openai.com/v1/chat/completions",
        model_name="gpt-4",
        max_tokens=8192,
        temperature=0.3,
        requires_credential=True,
        icon="🧠",
        description="Advanced model for in-depth review",
        capabilities=["code-analysis", "recommendations", "security-check", "architecture-review"],
    ),
    BackendDescriptor(
        id="claude-3-haiku",
        name="Claude 3 Haiku",
        provider=Provider.anthropic,
        endpoint="https://api.anthropic.com/v1/messages",
        model_name="claude-3-haiku-20240307",
        max_tokens=4096,
        temperature=0.3,
        requires_credential=True,
        icon="🎭",
        description="Fast Claude model for basic analysis",
        capabilities=["code-analysis", "recommendations"],
    ),
    BackendDescriptor(
        id="claude-3-sonnet",
        name="Claude 3 Sonnet",
        provider=Provider.anthropic,
        endpoint="https://api.anthropic.com/v1/messages",
        model_name="claude-3-sonnet-20240229",
        max_tokens=4096,
        temperature=0.3,
        requires_credential=True,
        icon="🎼",
        description="Balanced model for quality analysis",
        capabilities=["code-analysis", "recommendations", "security-check"],
    ),
    BackendDescriptor(
        id="ollama-codellama",
        name="Ollama CodeLlama",
        provider=Provider.ollama,
        endpoint="http://localhost:11434/api/generate",
        model_name="codellama:7b",
        max_tokens=2048,
        temperature=0.2,
        icon="🦙",
        description="Local model for code analysis",
        capabilities=["code-analysis", "recommendations"],
    ),
    BackendDescriptor(
        id="ollama-llama2",
        name="Ollama Llama2",
        provider=Provider.ollama,
        endpoint="http://localhost:11434/api/generate",
        model_name="llama2:7b",
        max_tokens=2048,
        temperature=0.3,
        icon="🦙",
        description="General purpose local model",
        capabilities=["code-analysis", "recommendations"],
    ),
    BackendDescriptor(
        id="lmstudio-local",
        name="LM Studio Local",
        provider=Provider.lmstudio,
        endpoint="http://localhost:1234/v1/chat/completions",
        model_name="local-model",
        max_tokens=4096,
        temperature=0.3,
        icon="🏠",
        description="Local model served by LM Studio",
        capabilities=["code-analysis", "recommendations"],
    ),
    BackendDescriptor(
        id=DEFAULT_MODEL_ID,
        name="Built-in analyzer",
        provider=Provider.builtin,
        icon="⚙️",
        description="Rule-based analysis without AI (always available)",
        capabilities=["basic-analysis", "pattern-detection"],
    ),
]

BUILTIN_MODEL_IDS = {model.id for model in BUILTIN_MODELS}

# health paths probed before a local daemon is used
HEALTH_PATHS = {
    Provider.ollama: ("/api/generate", "/api/tags"),
    Provider.lmstudio: ("/v1/chat/completions", "/v1/models"),
}

SYSTEM_PROMPT = "You are an expert in analyzing Node-RED flows. Answer in JSON only."

PROMPTS = {
    "codeAnalysis": """You are an expert in analyzing Node-RED flows. Analyze the flow below and find:
1. Potential problems and bugs
2. Optimization opportunities
3. Security problems
4. Recommendations for improvement

Answer in JSON using this format:
{
  "issues": [{"type": "kind", "severity": "high/warning/info", "title": "title", "message": "description", "action": "recommendation"}],
  "patterns": [{"name": "name", "confidence": number, "description": "description"}],
  "recommendations": ["recommendation1", "recommendation2"]
}""",
    "securityCheck": """Run a security review of the Node-RED flow below. Find:
1. Security vulnerabilities
2. Unsafe practices
3. Authentication problems
4. Data leaks

Answer in JSON with a detailed description of every problem found.""",
    "performanceAnalysis": """Analyze the performance of the Node-RED flow below:
1. Bottlenecks
2. Inefficient operations
3. Memory problems
4. Optimization recommendations

Answer with concrete recommendations.""",
}

DEFAULT_ANALYSIS_TYPE = "codeAnalysis"


def get_prompt(analysis_type: str) -> str:
    """Prompt template for an analysis type, defaulting to code analysis."""
    return PROMPTS.get(analysis_type, PROMPTS[DEFAULT_ANALYSIS_TYPE])
