import ast
import re
from pathlib import Path


DB_SESSION_METHODS = {
    "add",
    "add_all",
    "commit",
    "delete",
    "execute",
    "flush",
    "get",
    "query",
    "refresh",
    "rollback",
}

NUMBERED_STEP = re.compile(r"^\s*\d+\.\s+\S", re.MULTILINE)


def _test_files() -> list[Path]:
    root = Path(__file__).resolve().parent
    return sorted(
        path
        for path in root.rglob("test_*.py")
        if "helpers" not in path.parts and path.name != "test_compliance_rules.py"
    )


def _test_functions(file_path: Path) -> list[ast.FunctionDef]:
    tree = ast.parse(file_path.read_text(encoding="utf-8"))
    return [node for node in tree.body if isinstance(node, ast.FunctionDef) and node.name.startswith("test_")]


def _db_session_calls(node: ast.FunctionDef) -> list[int]:
    lines = []
    for subnode in ast.walk(node):
        if not isinstance(subnode, ast.Call):
            continue
        func = subnode.func
        if (
            isinstance(func, ast.Attribute)
            and isinstance(func.value, ast.Name)
            and func.value.id == "db_session"
            and func.attr in DB_SESSION_METHODS
        ):
            lines.append(subnode.lineno)
    return lines


def test_no_direct_db_session_calls_inside_test_functions():
    """
    Validate test methods avoid direct db_session operations.

    1. Discover all backend test files excluding conftest and helpers.
    2. Parse each file AST and inspect only test_* function bodies.
    3. Detect any direct db_session DB operation call usage.
    4. Validate no violations exist and report actionable locations otherwise.
    """
    errors: list[str] = []
    root = Path(__file__).resolve().parent
    for file_path in _test_files():
        for node in _test_functions(file_path):
            for line in _db_session_calls(node):
                errors.append(f"{file_path.relative_to(root)}:{line} in {node.name}")
    assert not errors, "Direct db_session calls found in test methods:\n" + "\n".join(errors)


def test_every_test_documents_numbered_steps():
    """
    Validate each test carries a docstring with numbered steps.

    1. Discover all backend test files excluding conftest and helpers.
    2. Read the docstring of every test_* function.
    3. Count the numbered step lines in each docstring.
    4. Validate every test lists at least three steps.
    """
    errors: list[str] = []
    root = Path(__file__).resolve().parent
    for file_path in _test_files():
        for node in _test_functions(file_path):
            docstring = ast.get_docstring(node) or ""
            if len(NUMBERED_STEP.findall(docstring)) < 3:
                errors.append(f"{file_path.relative_to(root)}:{node.lineno} in {node.name}")
    assert not errors, "Tests without numbered-step docstrings:\n" + "\n".join(errors)
