import os
import sys

# Ensure the repository root is on sys.path so `import oncall_copilot.*` works reliably
# across different pytest import modes/environments.
REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
TESTS_DIR = os.path.dirname(os.path.abspath(__file__))
for path in (REPO_ROOT, TESTS_DIR):
    if path not in sys.path:
        sys.path.insert(0, path)
