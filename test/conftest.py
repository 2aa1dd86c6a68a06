import pytest

from app.services.knowledge import KnowledgeBase, load_knowledge_base


@pytest.fixture(scope="session")
def kb() -> KnowledgeBase:
    # bundled tables, independent of KNOWLEDGE_BASE_PATH
    return load_knowledge_base()
