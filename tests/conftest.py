"""
Generic fixtures for compiler tests.

These fixtures provide common test infrastructure:
- Sample diagram sources (text and files)
- Temporary diagram and output directories
- Generator configurations pointing at temporary paths
"""

import pytest

from statemachine_codegen.config import GeneratorConfig


SAMPLE_DIAGRAM = """\
flowchart TD
    Start[Dial In] -->|DIAL| MainMenu[Main Menu]
    MainMenu -->|SELECT_INFO| KnowMore[Know More]
    MainMenu -->|SELECT_LOGIN| Login[Login]
    KnowMore -->|BACK| MainMenu
    Login -->|SUBMIT guard:hasPin do:recordAttempt| Account[Account Overview]
    Login -->|FAIL| Login
    Account -->|DONE| Goodbye((Goodbye))
    classDef user-machine fill:#fff,stroke:#333
    class Start,MainMenu,Login user-machine
"""

SAMPLE_MARKDOWN = f"""\
# USSD Menu

Top-level menu shown after dialing the short code.

```mermaid
{SAMPLE_DIAGRAM}```
"""

CORE_DIAGRAM = """\
```mermaid
flowchart LR
    Idle[Waiting] -->|REQUEST| RouteRequest{Route}
    RouteRequest -->|TO_USER| Handoff((Handed Off))
    classDef core-machine fill:#eee
    class Idle,RouteRequest core-machine
```
"""


@pytest.fixture
def sample_diagram():
    """Flowchart text for a small user menu machine."""
    return SAMPLE_DIAGRAM


@pytest.fixture
def sample_markdown():
    """The sample diagram wrapped in a markdown document."""
    return SAMPLE_MARKDOWN


@pytest.fixture
def diagram_dir(tmp_path):
    """Directory holding two diagram sources: a user menu and a core router."""
    source_dir = tmp_path / 'diagrams'
    source_dir.mkdir()
    (source_dir / 'ussd-menu.md').write_text(SAMPLE_MARKDOWN)
    (source_dir / 'router.md').write_text(CORE_DIAGRAM)
    return source_dir


@pytest.fixture
def generator_config(tmp_path, diagram_dir):
    """Generator configuration writing below a temporary output directory."""
    return GeneratorConfig(
        sources=[str(diagram_dir)],
        output_dir=str(tmp_path / 'generated'),
    )
