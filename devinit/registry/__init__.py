from devinit.registry import aliases, projects, settings
from devinit.registry.models import Alias, Project, Settings

__all__ = ["aliases", "projects", "settings", "Alias", "Project", "Settings"]
