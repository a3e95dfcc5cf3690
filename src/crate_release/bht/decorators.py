import logging
from typing import Iterator, Optional

from py_trees.decorators import Decorator, behaviour, common
from pydantic import BaseModel

from .logging_wrapper import PyTreesLoggerWrapper


class DecoratorWithLogging(Decorator):
    logger: PyTreesLoggerWrapper

    def __init__(
        self, name: str, child: behaviour.Behaviour, log_prefix: str = ""
    ) -> None:
        super().__init__(name=name, child=child)
        if log_prefix != "":
            log_prefix = f"{log_prefix}."
        self.logger = PyTreesLoggerWrapper(
            logging.getLogger(f"{log_prefix}{self.name}")
        )


class StatusFlagGuard(DecoratorWithLogging):
    """
    A decorator that records the child's status in a flag and guards on it.

    The flag is an ``Optional[common.Status]`` field of a pydantic model.
    While the guard is inactive the child is ticked and its status is copied
    into the flag on every update. Once the flag holds the guarded status the
    child is no longer ticked and the flag value is returned instead.

    With guard_status=None the guard activates on any terminal status
    (SUCCESS or FAILURE), so the child runs to completion at most once.

    Args:
        name: the decorator name, generated from the flag when None
        child: the child behaviour or subtree
        container: the BaseModel instance containing the flag
        flag: the name of the Optional[Status] field in the container
        message_field: optional str field receiving the child's feedback message
        guard_status: FAILURE, SUCCESS, or None (see above)
    """

    def __init__(
        self,
        name: Optional[str],
        child: behaviour.Behaviour,
        container: BaseModel,
        flag: str,
        message_field: Optional[str] = None,
        guard_status: Optional[common.Status] = common.Status.FAILURE,
        log_prefix: str = "",
    ):
        if not hasattr(container, flag):
            raise ValueError(
                f"Field '{flag}' does not exist on {container.__class__.__name__}"
            )
        current_value = getattr(container, flag)
        if current_value is not None and not isinstance(current_value, common.Status):
            raise TypeError(
                f"Field '{flag}' must be either common.Status or None, "
                f"got {type(current_value).__name__}"
            )
        if message_field is not None and not hasattr(container, message_field):
            raise ValueError(
                f"Field '{message_field}' does not exist on {container.__class__.__name__}"
            )
        if guard_status not in (common.Status.FAILURE, common.Status.SUCCESS, None):
            raise ValueError(
                f"guard_status must be FAILURE, SUCCESS, or None, got {guard_status}"
            )

        self.container = container
        self.flag = flag
        self.message_field = message_field
        self.guard_status = guard_status
        if name is None:
            if guard_status == common.Status.FAILURE:
                name = f"Unless {flag} failed"
            elif guard_status == common.Status.SUCCESS:
                name = f"Unless {flag} succeeded"
            else:
                name = f"Once {flag}"
        super(StatusFlagGuard, self).__init__(
            name=name, child=child, log_prefix=log_prefix
        )

    def _is_guard_active(self) -> bool:
        current = getattr(self.container, self.flag, None)
        if self.guard_status is None:
            return current in (common.Status.SUCCESS, common.Status.FAILURE)
        return current == self.guard_status

    def update(self) -> common.Status:
        if self._is_guard_active():
            current: common.Status = getattr(self.container, self.flag)
            self.logger.debug(f"Returning guard status: {current}")
            return current

        new_status = self.decorated.status
        setattr(self.container, self.flag, new_status)
        if self.message_field is not None and self.decorated.feedback_message:
            setattr(
                self.container, self.message_field, self.decorated.feedback_message
            )
        return new_status

    def tick(self) -> Iterator[behaviour.Behaviour]:
        """
        Tick the child unless the guard is active.

        Yields:
            a reference to itself or a behaviour in it's child subtree
        """
        if self._is_guard_active():
            for node in behaviour.Behaviour.tick(self):
                yield node
        else:
            for node in Decorator.tick(self):
                yield node
