"""Runtime configuration for the plugin and the command-line tools."""

from pathlib import Path
from typing import Literal

from pydantic import AnyHttpUrl, Field
from pydantic_settings import SettingsConfigDict

from pytest_stepwise.models import SettingsModel

type SinkName = Literal['auto', 'allure', 'memory']

DEFAULT_RESULTS_DIR = Path('out/allure-results')


class StepwiseSettings(SettingsModel):
    """Settings resolved from `STEPWISE_*` environment variables.

    Command-line options of the pytest plugin take precedence over the
    environment; see `pytest_stepwise.plugin`.
    """

    model_config = SettingsConfigDict(
        env_prefix='STEPWISE_',
        frozen=True,
        extra='ignore',
    )

    base_url: AnyHttpUrl | None = Field(
        default=None,
        title='Application base URL',
        description='Root URL that page objects are opened against.',
    )

    data_dir: Path = Field(
        default=Path('data'),
        title='Test data directory',
        description='Directory that relative test data file names are resolved against.',
    )

    results_dir: Path = Field(
        default=DEFAULT_RESULTS_DIR,
        title='Report results directory',
        description='Directory where Allure results are written and served from.',
    )

    sink: SinkName = Field(
        default='auto',
        title='Reporting sink',
        description=(
            'Reporting sink used by scenarios. `auto` selects Allure when '
            'the allure-pytest plugin is active and falls back to memory.'
        ),
    )

    @property
    def base_url_string(self) -> str | None:
        """Return the base URL without a trailing slash."""
        if self.base_url is None:
            return None

        return f'{self.base_url}'.rstrip('/')
