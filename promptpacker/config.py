# promptpacker/config.py

# --- Configuration ---
DEFAULT_IGNORES = [
    ".git/", ".hg/", ".svn/", "__pycache__/", "*.pyc", "*.pyo", "*.pyd",
    ".Python", "build/", "develop-eggs/", "dist/", "downloads/", "eggs/",
    ".eggs/", "parts/", "sdist/", "wheels/",
    "*.egg-info/", ".installed.cfg", "*.egg", "MANIFEST",
    ".env", ".venv", "env/", "venv/", "ENV/", "VENV/", "node_modules/",
    "npm-debug.log", "yarn-error.log", ".vscode/", ".idea/",
    "*.sublime-project", "*.sublime-workspace", ".project", ".classpath",
    ".cproject", ".settings/", ".DS_Store", "Thumbs.db",
    ".pytest_cache/", ".mypy_cache/", ".tox/", ".coverage", ".hypothesis/",
    "htmlcov/", ".nox/",
]

BINARY_EXTENSIONS = {
    # Images
    ".png", ".jpg", ".jpeg", ".gif", ".bmp", ".tiff", ".ico", ".webp", ".svg",
    # Archives
    ".zip", ".gz", ".tar", ".rar", ".7z", ".jar", ".war", ".ear",
    # Executables
    ".exe", ".dll", ".so", ".dylib", ".bin", ".apk", ".app",
    # Media
    ".mp3", ".mp4", ".avi", ".mov", ".flv", ".wmv", ".wav", ".ogg", ".webm",
    # Office documents
    ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx", ".pdf",
    # Database/binary data
    ".db", ".sqlite", ".dat", ".class", ".obj", ".o", ".pyc",
    # Fonts
    ".ttf", ".woff", ".woff2", ".eot", ".otf",
}

MAX_FILE_SIZE_BYTES = 1024 * 1024
BINARY_SAMPLE_SIZE = 512
BINARY_THRESHOLD_PERCENT = 10

# Rough estimate, GPT style tokenizers average about four characters per token
CHARS_PER_TOKEN = 4
MAX_TOKEN_LIMIT = 2_000_000
