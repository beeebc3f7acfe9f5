from pathlib import Path
from dotenv import load_dotenv
import pytest

# Load environment variables for tests before the app reads its settings
load_dotenv(Path(__file__).resolve().parents[1] / '.env.test')


@pytest.fixture(autouse=True)
def clear_dependency_overrides():
    """Drop per-test dependency overrides so tests cannot leak into each other."""
    yield
    from marketplace.main import app

    app.dependency_overrides.clear()
