from typing import Any
from abc import ABC, abstractmethod

from app.core.exceptions import AppError
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class BaseService(ABC):
    """Base class for application services.

    Public methods call ``execute(action=..., **kwargs)``, which validates
    the input, dispatches to ``run`` and turns unexpected failures into
    ``AppError`` so callers only ever see the application hierarchy.
    """

    def __init__(self):
        self.logger = LOGGER

    async def execute(self, *args, **kwargs) -> Any:
        """Execute the service logic.

        Raises:
            AppError: If execution fails
        """
        try:
            self.validate(*args, **kwargs)

            return await self.run(*args, **kwargs)

        except AppError:
            raise

        except Exception as e:
            self.logger.error(
                f"Service execution failed: {str(e)}",
                exc_info=True,
                extra={"service": self.__class__.__name__, "action": kwargs.get("action")}
            )
            raise AppError(f"Service execution failed: {str(e)}", original_error=e)

    def validate(self, *args, **kwargs):
        """Validate service input.

        Override this method to implement custom validation logic.

        Raises:
            AppError: If input is invalid
        """
        pass

    @abstractmethod
    async def run(self, *args, **kwargs) -> Any:
        """Run the core service logic; routes on the ``action`` keyword."""
        pass
