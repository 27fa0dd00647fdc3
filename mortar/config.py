"""
Config system - named property domains with typed, coerced access.

A ConfigManager owns a set of ConfigDomains. Domains are created lazily
on first write and can be loaded from flat ``key=value`` property files
in a config folder. Typed reads coerce the stored value through the
manager's MapperFactory.

Precedence for the config folder:
    default domain ``configFolder`` > MORTAR_CONFIG_FOLDER env var > "config"
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Type, Union

from dotenv import dotenv_values

from .faults import ConfigFault, DuplicateDomainFault, PropertyFileFault
from .mapping import MapperFactory
from .properties import matches_type

logger = logging.getLogger("mortar.config")


DEFAULT_CONFIG_DOMAIN = "default"
DEFAULT_CONFIG_FOLDER = "config"
DEFAULT_CONFIG_FILE = "default.config"
CONFIG_FOLDER_PROPERTY = "configFolder"
CONFIG_DOMAIN_PROPERTY = "configDomain"
MAPPER_FACTORY_PROPERTY = "mapperFactory"

ENV_PREFIX = "MORTAR_"

PROPERTY_FILE_SUFFIXES = ("", ".properties", ".config")

# listener(domain, name, old_value, new_value)
PropertyListener = Callable[[str, str, Any, Any], None]


class ConfigDomain:
    """
    A named, thread-safe bag of properties.

    Setting a property to None removes it. Listeners fire only when the
    new value differs from the old one.

    Example:
        ```python
        domain = ConfigDomain("app")
        domain.set_property("port", 8080)
        domain.get_property("port")        # 8080
        domain.set_property("port", None)  # removed
        ```
    """

    __slots__ = ("name", "_properties", "_listeners", "_lock")

    def __init__(self, name: str, properties: Optional[Mapping[str, Any]] = None):
        if not name:
            raise ValueError("domain name must not be empty")
        self.name = name
        self._properties: Dict[str, Any] = {}
        self._listeners: List[tuple[Optional[str], PropertyListener]] = []
        self._lock = threading.RLock()
        if properties:
            for key, value in properties.items():
                if value is not None:
                    self._properties[key] = value

    def get_property(self, name: str) -> Any:
        return self._properties.get(name)

    def set_property(self, name: str, value: Any) -> None:
        if name is None:
            raise ValueError("property name must not be None")
        with self._lock:
            old = self._properties.get(name)
            if value is None:
                self._properties.pop(name, None)
            else:
                self._properties[name] = value
            listeners = list(self._listeners)
        if old == value:
            return
        for watched, listener in listeners:
            if watched is None or watched == name:
                listener(self.name, name, old, value)

    def get_properties(self) -> Dict[str, Any]:
        return dict(self._properties)

    def get_properties_with_prefix(self, prefix: str) -> Dict[str, Any]:
        return {k: v for k, v in self._properties.items() if k.startswith(prefix)}

    def get_properties_with_suffix(self, suffix: str) -> Dict[str, Any]:
        return {k: v for k, v in self._properties.items() if k.endswith(suffix)}

    def merge(self, other: Union["ConfigDomain", Mapping[str, Any]]) -> None:
        """Copy every property of ``other`` into this domain, firing listeners."""
        entries = other.get_properties() if isinstance(other, ConfigDomain) else dict(other)
        for key, value in entries.items():
            self.set_property(key, value)

    def add_listener(self, listener: PropertyListener, name: Optional[str] = None) -> None:
        """Watch one property, or every property when ``name`` is None."""
        with self._lock:
            self._listeners.append((name, listener))

    def remove_listener(self, listener: PropertyListener, name: Optional[str] = None) -> None:
        with self._lock:
            self._listeners = [
                (watched, registered) for watched, registered in self._listeners
                if not (registered is listener and watched == name)
            ]

    def __contains__(self, name: str) -> bool:
        return name in self._properties

    def __len__(self) -> int:
        return len(self._properties)

    def __repr__(self) -> str:
        return f"ConfigDomain(name={self.name!r}, properties={len(self._properties)})"


class ConfigManager:
    """
    Owns ConfigDomains and provides typed get/set with value coercion.

    ``get_property(domain, name, type_)`` returns the stored value when it
    already matches ``type_``; otherwise the value is converted by the
    mapper registered for (type(value), type_), and a failed conversion
    raises ConversionFault.
    """

    def __init__(
        self,
        config_folder: Optional[Union[str, Path]] = None,
        mapper_factory: Optional[MapperFactory] = None,
        env_prefix: str = ENV_PREFIX,
    ):
        self.env_prefix = env_prefix
        self._domains: Dict[str, ConfigDomain] = {}
        self._lock = threading.Lock()
        self._mappers = mapper_factory or MapperFactory()
        if config_folder is not None:
            self.set_default_property(CONFIG_FOLDER_PROPERTY, str(config_folder))

    # ------------------------------------------------------------------
    # Domains
    # ------------------------------------------------------------------

    def create_domain(self, name: str) -> ConfigDomain:
        """Create a new, empty domain. Raises DuplicateDomainFault if it exists."""
        with self._lock:
            if name in self._domains:
                raise DuplicateDomainFault(name)
            domain = ConfigDomain(name)
            self._domains[name] = domain
        logger.debug("Created config domain %s", name)
        return domain

    def get_domain(self, name: str) -> Optional[ConfigDomain]:
        return self._domains.get(name)

    def set_domain(self, domain: ConfigDomain) -> None:
        """Install ``domain``, replacing any domain of the same name."""
        if domain is None:
            raise ValueError("domain must not be None")
        with self._lock:
            self._domains[domain.name] = domain

    def remove_domain(self, name: str) -> Optional[ConfigDomain]:
        with self._lock:
            return self._domains.pop(name, None)

    def get_domains(self) -> List[str]:
        return sorted(self._domains)

    def _domain_for_write(self, name: str) -> ConfigDomain:
        domain = self._domains.get(name)
        if domain is None:
            with self._lock:
                domain = self._domains.setdefault(name, ConfigDomain(name))
        return domain

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    def get_property(self, domain: str, name: str, type_: Optional[Type] = None) -> Any:
        config_domain = self._domains.get(domain)
        if config_domain is None:
            return None
        value = config_domain.get_property(name)
        if value is None or matches_type(value, type_):
            return value
        return self.get_mapper_factory().convert(value, type_)

    def set_property(self, domain: str, name: str, value: Any) -> None:
        if value is None:
            config_domain = self._domains.get(domain)
            if config_domain is not None:
                config_domain.set_property(name, None)
            return
        self._domain_for_write(domain).set_property(name, value)

    def get_default_property(self, name: str, type_: Optional[Type] = None) -> Any:
        return self.get_property(DEFAULT_CONFIG_DOMAIN, name, type_)

    def set_default_property(self, name: str, value: Any) -> None:
        self.set_property(DEFAULT_CONFIG_DOMAIN, name, value)

    def add_listener(self, domain: str, listener: PropertyListener, name: Optional[str] = None) -> None:
        self._domain_for_write(domain).add_listener(listener, name)

    def get_mapper_factory(self) -> MapperFactory:
        """The factory stored under ``mapperFactory`` in the default domain, else the built-in one."""
        default = self._domains.get(DEFAULT_CONFIG_DOMAIN)
        if default is not None:
            factory = default.get_property(MAPPER_FACTORY_PROPERTY)
            if isinstance(factory, MapperFactory):
                return factory
        return self._mappers

    # ------------------------------------------------------------------
    # Property files
    # ------------------------------------------------------------------

    @property
    def config_folder(self) -> Path:
        folder = self.get_default_property(CONFIG_FOLDER_PROPERTY)
        if folder is None:
            folder = os.environ.get(f"{self.env_prefix}CONFIG_FOLDER", DEFAULT_CONFIG_FOLDER)
        return Path(folder)

    @property
    def bootstrap_domain(self) -> str:
        """Name of the property file loaded into the default domain by init()."""
        name = self.get_default_property(CONFIG_DOMAIN_PROPERTY)
        if name is None:
            name = os.environ.get(f"{self.env_prefix}CONFIG_DOMAIN", DEFAULT_CONFIG_FILE)
        return str(name)

    def resolve_file(self, domain: str) -> Path:
        """
        Find the property file for ``domain``.

        Tries ``<domain>``, ``<domain>.properties`` and ``<domain>.config``
        inside the config folder, in that order.
        """
        folder = self.config_folder
        if not folder.is_dir():
            raise PropertyFileFault(domain, str(folder), "config folder does not exist")
        for suffix in PROPERTY_FILE_SUFFIXES:
            candidate = folder / f"{domain}{suffix}"
            if candidate.is_file():
                if not os.access(candidate, os.R_OK):
                    raise PropertyFileFault(domain, str(candidate), "file is not readable")
                return candidate
        raise PropertyFileFault(domain, str(folder / domain), "no property file found")

    def read_domain(self, domain: str, source: Optional[str] = None) -> ConfigDomain:
        """Parse the property file for ``source`` (default ``domain``) without installing it."""
        path = self.resolve_file(source or domain)
        try:
            values = dotenv_values(path)
        except (OSError, UnicodeDecodeError) as exc:
            raise PropertyFileFault(domain, str(path), str(exc)) from exc
        logger.debug("Read %d properties for domain %s from %s", len(values), domain, path)
        return ConfigDomain(domain, values)

    def load_domain(self, domain: str) -> ConfigDomain:
        """Load ``domain`` from its property file, replacing the in-memory domain."""
        loaded = self.read_domain(domain)
        self.set_domain(loaded)
        return loaded

    def load_and_merge_domain(self, domain: str, source: Optional[str] = None) -> ConfigDomain:
        """Load a property file and merge it into the existing domain."""
        loaded = self.read_domain(domain, source)
        target = self._domain_for_write(domain)
        target.merge(loaded)
        return target

    def init(self) -> "ConfigManager":
        """
        Bootstrap the default domain from its property file.

        A missing or unreadable file is not fatal: the manager keeps
        working with whatever is already in memory.
        """
        try:
            self.load_and_merge_domain(DEFAULT_CONFIG_DOMAIN, self.bootstrap_domain)
        except ConfigFault as fault:
            logger.debug("Default config domain not loaded: %s", fault)
        return self

    def __repr__(self) -> str:
        return f"ConfigManager(domains={self.get_domains()})"
