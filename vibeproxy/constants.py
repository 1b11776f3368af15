"""Constants and default values for vibeproxy."""

SERVICE_NAME = "vibeproxy"
SERVICE_VERSION = "2.1.0"

# Server defaults
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8001
DEFAULT_PROVIDER = "anthropic"
DEFAULT_LOG_LEVEL = "INFO"

# Default model configuration
DEFAULT_MODEL = "anthropic:claude-sonnet-4-5"
DEFAULT_MAX_TOKENS = 4000

# Upstream endpoints
DEFAULT_GITHUB_API_URL = "https://api.github.com"

# Web tool
DEFAULT_WEB_FETCH_CHARS = 5000
WEB_FETCH_TIMEOUT = 10.0  # seconds

# Features advertised on /health and /v1/caps
FEATURES = ["github", "projects", "complex-apps", "agent", "chat-sessions"]

# Project scaffold complexities
COMPLEXITIES = ("simple", "complex")

# Ignore patterns applied when hydrating a workspace from a remote repository
BUILTIN_IGNORES = [
    # Version control
    ".git/",

    # Python
    "__pycache__/",
    "*.pyc",
    "*.egg-info/",
    ".pytest_cache/",
    "venv/",
    ".venv/",

    # JavaScript/Node
    "node_modules/",
    "package-lock.json",
    "yarn.lock",

    # Build artifacts
    "dist/",
    "build/",
    ".next/",

    # Binary assets
    "*.png",
    "*.jpg",
    "*.jpeg",
    "*.gif",
    "*.ico",
    "*.woff",
    "*.woff2",
    "*.ttf",
    "*.zip",

    # Editor files
    ".DS_Store",
    ".vscode/",
    ".idea/",
]

# Extensions used by the locate heuristic
STYLE_EXTENSIONS = (".css", ".scss", ".sass", ".less")
SOURCE_EXTENSIONS = (
    ".js",
    ".jsx",
    ".ts",
    ".tsx",
    ".mjs",
    ".cjs",
    ".vue",
    ".svelte",
    ".py",
    ".go",
    ".rs",
    ".java",
    ".rb",
    ".php",
)

# Locate relevance scores
RELEVANCE_COMPONENT = 0.9
RELEVANCE_STYLE = 0.8
RELEVANCE_SOURCE = 0.5

# Agent tools exposed on /v1/caps
AGENT_TOOLS = {
    "search": "Case-insensitive text search across every file in the workspace",
    "tree": "Directory tree of the workspace built from file paths",
    "cat": "Read the contents of one or more files (comma separated)",
    "locate": "Rank files likely relevant to a task description",
    "definition": "Find the lines where a symbol is defined",
    "references": "Find every line that references a symbol",
    "think": "Ask the model to reason step-by-step about a problem",
    "web": "Fetch a web page as plain text (truncated)",
    "patch": "Apply a unified diff to a workspace file",
}

# Intent keywords, checked in this order
INTENT_KEYWORDS = {
    "approve": ["approve", "looks good", "lgtm", "commit", "ship it", "push it"],
    "deploy": ["deploy", "publish", "go live", "host it", "vercel", "netlify"],
    "modify": [
        "add",
        "create",
        "change",
        "update",
        "modify",
        "fix",
        "remove",
        "delete",
        "make",
        "build",
        "implement",
        "refactor",
    ],
}

# Model descriptors - Anthropic Claude models only
SUPPORTED_MODELS = {
    # Claude Sonnet 4.5 - Latest flagship model (best for coding and agents)
    "anthropic:claude-sonnet-4-5": {
        "provider": "anthropic",
        "name": "claude-sonnet-4-5-20250929",
        "max_output_tokens": 8192,
        "n_ctx": 200000,
    },
    # Claude Haiku 4.5 - Fast and cost-effective
    "anthropic:claude-haiku-4-5": {
        "provider": "anthropic",
        "name": "claude-haiku-4-5-20251001",
        "max_output_tokens": 8192,
        "n_ctx": 200000,
    },
    # Claude Opus 4.1 - Most capable for complex reasoning
    "anthropic:claude-opus-4-1": {
        "provider": "anthropic",
        "name": "claude-opus-4-1-20250805",
        "max_output_tokens": 8192,
        "n_ctx": 200000,
    },
}

# Capability flags advertised for every chat model on /v1/caps
MODEL_CAPABILITIES = {
    "supports_tools": True,
    "supports_multimodality": True,
    "supports_agent": True,
    "supports_reasoning": True,
    "supports_complex_apps": True,
    "supports_databases": True,
    "supports_github": True,
}
