"""Asking the caller to choose between candidates."""

import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence, TYPE_CHECKING

from .error_types import NoSelectionError
from .repository import GitRepository

if TYPE_CHECKING:
    from ..workspace import Workspace


logger = logging.getLogger('repo_resolver.resolver.prompter')

CHECKOUT_DETACHED_LABEL = "Checkout detached head"
FORCE_UPDATE_LABEL = "Force update"


@dataclass(frozen=True)
class PickItem:
    label: str
    detail: str = ""

    def to_dict(self):
        return {"label": self.label, "detail": self.detail}


class Prompter(ABC):
    """Front-end capability: show an ordered list, return the chosen index."""

    @abstractmethod
    def present(self, items: Sequence[PickItem], placeholder: str) -> Optional[int]:
        """Return the index of the chosen item, or None if the prompt was dismissed."""


class PresetPrompter(Prompter):
    """
    Non-interactive prompter for callers that state their choice up front.

    Picks the item whose detail equals ``selected_path`` or whose label
    equals ``choice``; anything else is a dismissal.
    """

    def __init__(self, selected_path: Optional[str] = None, choice: Optional[str] = None):
        self.selected_path = os.path.normpath(selected_path) if selected_path else None
        self.choice = choice
        self.last_items: List[PickItem] = []
        self.last_placeholder = ""

    def present(self, items: Sequence[PickItem], placeholder: str) -> Optional[int]:
        self.last_items = list(items)
        self.last_placeholder = placeholder
        for index, item in enumerate(items):
            if self.selected_path and item.detail and os.path.normpath(item.detail) == self.selected_path:
                return index
            if self.choice and item.label.lower() == self.choice.lower():
                return index
        return None


def _dismissed(message: str, placeholder: str, items: Sequence[PickItem]) -> NoSelectionError:
    return NoSelectionError(message, placeholder, [item.to_dict() for item in items])


def pick_repository(prompter: Prompter, repositories: Sequence[GitRepository], placeholder: str,
                    auto_select_workspace_roots: bool = False,
                    workspace: Optional["Workspace"] = None) -> GitRepository:
    """
    Choose one repository, asking only when more than one remains.

    With ``auto_select_workspace_roots`` the choice is narrowed to candidates
    that are workspace roots, if there are any, and a single remaining
    candidate is returned without asking. Otherwise the prompt is always shown.

    Raises:
        NoSelectionError: if the prompt is dismissed
    """
    if not repositories:
        raise ValueError("no repositories to pick from")

    choices = list(repositories)
    if auto_select_workspace_roots:
        if workspace is not None:
            roots = [repository for repository in choices if workspace.is_root(repository.root)]
            if roots:
                choices = roots

        if len(choices) == 1:
            logger.info(f"Automatically picked {choices[0].root} for prompt {placeholder}")
            return choices[0]

    items = [PickItem(os.path.basename(repository.root), repository.root) for repository in choices]
    index = prompter.present(items, placeholder)
    if index is None or not 0 <= index < len(choices):
        raise _dismissed("no repository selected", placeholder, items)

    logger.info(f"User picked {choices[index].root} for prompt {placeholder}")
    return choices[index]


def choose_checkout_strategy(prompter: Prompter, revision: str) -> str:
    """
    Ask whether to check out the fetched commit detached or reset the local branch.

    Returns:
        "detached" or "reset"

    Raises:
        NoSelectionError: if the prompt is dismissed
    """
    items = [PickItem(CHECKOUT_DETACHED_LABEL), PickItem(FORCE_UPDATE_LABEL)]
    placeholder = f"Can't checkout {revision} and fast-forward to remote {revision}."
    index = prompter.present(items, placeholder)
    if index == 0:
        return "detached"
    if index == 1:
        return "reset"
    raise _dismissed("no checkout strategy selected", placeholder, items)
