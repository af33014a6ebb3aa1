DEFAULT_CONTENT_EXTENSIONS = (
    ".md",
    ".mdx",
)

# Editor swap files and OS metadata that can carry a content suffix.
IGNORED_PREFIXES = (
    ".",
    "~",
    "#",
)


def is_content_file(file_name: str, extensions: tuple[str, ...] | list[str] = DEFAULT_CONTENT_EXTENSIONS) -> bool:
    base = file_name.replace("\\", "/").rsplit("/", 1)[-1]
    if not base or base.startswith(IGNORED_PREFIXES):
        return False
    return any(base.lower().endswith(ext.lower()) for ext in extensions)
