"""Classification of .NET manifest paths by extension."""

PROJECT_EXTENSIONS = (".csproj", ".fsproj", ".vbproj")
SOLUTION_EXTENSIONS = (".sln",)


def is_project_path(path: str) -> bool:
    return path.lower().endswith(PROJECT_EXTENSIONS)


def is_solution_path(path: str) -> bool:
    return path.lower().endswith(SOLUTION_EXTENSIONS)
