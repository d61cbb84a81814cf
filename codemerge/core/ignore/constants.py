"""
Central configuration for ignore rule evaluation
"""

# Rules file read from the traversal root
IGNORE_FILENAME = ".gitignore"

# Version control metadata directory, handled by its own rule
VCS_DIR_NAME = ".git"

# Directory/file basenames excluded at any depth
DEFAULT_BLACKLIST = frozenset({
    # Dependencies and vendored code
    "node_modules",
    "vendor",

    # Build output
    "dist",
    "build",
    "target",
    "bin",
    "obj",

    # Version control
    VCS_DIR_NAME,

    # IDE and editors
    ".idea",
    ".vscode",

    # Python
    "__pycache__",
    "venv",
    "env",
    ".env",

    # Testing
    "coverage",

    # Temporary
    "tmp",
    "temp",
})

# Extensions whose content must never reach text-oriented callers
BINARY_EXTENSIONS = frozenset({
    # Images
    ".jpg", ".jpeg", ".png", ".gif", ".bmp", ".ico", ".webp", ".tif", ".tiff",

    # Video
    ".mp4", ".avi", ".mov", ".wmv", ".flv", ".mkv", ".webm",

    # Audio
    ".mp3", ".wav", ".ogg", ".m4a", ".flac",

    # Documents and archives
    ".pdf", ".zip", ".rar", ".7z", ".tar", ".gz", ".bz2", ".xz",

    # Executables and libraries
    ".exe", ".dll", ".so", ".dylib", ".app", ".bin",

    # Disk images
    ".iso", ".img", ".dmg",

    # Office formats
    ".doc", ".docx", ".ppt", ".pptx", ".xls", ".xlsx",
    ".odt", ".ods", ".odp",

    # Fonts
    ".eot", ".otf", ".ttf", ".woff", ".woff2",

    # Bytecode
    ".jar", ".class", ".pyc", ".pyo",

    # Packages
    ".deb", ".rpm", ".msi", ".pkg",
})

# Rules file limits
MAX_IGNORE_FILE_SIZE = 1024 * 1024  # 1MB
MAX_PATTERNS_PER_FILE = 10000
