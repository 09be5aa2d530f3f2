import difflib
import importlib.resources
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import yaml

from axiom.helpers.settings import Settings
from axiom.llm import litellm

logger = logging.getLogger(__name__)

ACTIVE_MODEL_KEY = "model"


@dataclass
class ModelSettings:
    name: str
    provider: Optional[str] = None
    description: str = ""

    @property
    def display_name(self) -> str:
        return self.description or self.name


def load_default_model_settings() -> List[ModelSettings]:
    resource = importlib.resources.files("axiom.resources").joinpath("model-settings.yml")
    with resource.open("r", encoding="utf-8") as f:
        model_settings_list = yaml.safe_load(f) or []
    return [ModelSettings(**model_settings_dict) for model_settings_dict in model_settings_list]


def register_models(model_settings: List[ModelSettings], model_settings_fnames) -> List[str]:
    """
    Merge model lists from YAML files into ``model_settings``.

    Entries replace existing ones with the same name. Missing or empty files
    are skipped.
    """
    files_loaded = []
    for model_settings_fname in model_settings_fnames:
        if not os.path.exists(model_settings_fname):
            continue
        if not Path(model_settings_fname).read_text().strip():
            continue
        try:
            with open(model_settings_fname, "r") as model_settings_file:
                model_settings_list = yaml.safe_load(model_settings_file)
            for model_settings_dict in model_settings_list:
                ms = ModelSettings(**model_settings_dict)
                model_settings[:] = [m for m in model_settings if m.name != ms.name]
                model_settings.append(ms)
        except Exception as e:
            raise Exception(f"Error loading model settings from {model_settings_fname}: {e}")
        files_loaded.append(model_settings_fname)
    return files_loaded


def get_chat_model_names() -> List[str]:
    """All chat models in the litellm catalogue, with and without provider prefix."""
    chat_models = set()
    for orig_model, attrs in litellm.model_cost.items():
        if attrs.get("mode") != "chat":
            continue
        provider = (attrs.get("litellm_provider") or "").lower()
        if provider and not orig_model.lower().startswith(provider + "/"):
            chat_models.add(f"{provider}/{orig_model}")
        chat_models.add(orig_model)
    return sorted(chat_models)


def fuzzy_match_models(name: str, candidates: List[str]) -> List[str]:
    """Substring matches, or failing that the closest spellings."""
    name = name.lower()
    matching_models = [m for m in candidates if name in m.lower()]
    if matching_models:
        return sorted(set(matching_models))
    return sorted(set(difflib.get_close_matches(name, candidates, n=3, cutoff=0.8)))


class ModelSettingsStore:
    """
    The model configuration the ``/model`` and ``/models`` commands work on.

    Holds the list of selectable models and the active model id. When backed
    by a :class:`Settings` with a file, switching models is persisted there.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        model_settings: Optional[List[ModelSettings]] = None,
    ):
        self.settings = settings or Settings()
        if model_settings is None:
            model_settings = load_default_model_settings()
            register_models(model_settings, self.settings.get("model-settings-files", []))
        self._models = list(model_settings)

        self._active_model = self.settings.get(ACTIVE_MODEL_KEY)
        if not self._active_model and self._models:
            self._active_model = self._models[0].name

    def list_models(self) -> List[ModelSettings]:
        return list(self._models)

    def get_model(self, model_id: str) -> Optional[ModelSettings]:
        return next((m for m in self._models if m.name == model_id), None)

    def get_active_model(self) -> Optional[str]:
        return self._active_model

    def set_active_model(self, model_id: str, persist: bool = True) -> str:
        if not model_id:
            raise ValueError("Model id must not be empty")

        if not self.get_model(model_id):
            logger.warning(f"Switching to a model that is not in the model list: {model_id}")

        self._active_model = model_id
        self.settings.set(ACTIVE_MODEL_KEY, model_id)
        if persist and self.settings.save():
            logger.info(f"Saved active model {model_id} to {self.settings.path}")
        return model_id

    def search_models(self, term: str, include_catalog: bool = False) -> List[str]:
        candidates = [m.name for m in self._models]
        if include_catalog:
            candidates = sorted(set(candidates) | set(get_chat_model_names()))
        return fuzzy_match_models(term, candidates)
