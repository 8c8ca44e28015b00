#!/usr/bin/env python3
"""syncdns - Docker label driven DNS rewrites

Keeps AdGuard Home DNS rewrites in sync with rewrite declarations attached to
running Docker containers. A container declares its rewrites with a label:

    labels:
      syncdns.rewrites: "Rewrite(app.local,10.0.0.5) Rewrite('api.local','10.0.0.6')"

Each declared rewrite is created in AdGuard Home while the container runs and
removed again when it stops. Rewrites that this process created are tracked per
container in a JSON state file, so rewrites created by someone else are never
claimed or deleted.

Environment variables:

    AdGuard Home (required):
        AdguardURL             AdGuard Home base URL (alias: ADGUARD_URL)
        AdguardUser            Admin username (alias: ADGUARD_USERNAME)
        AdguardPassword        Admin password (alias: ADGUARD_PASSWORD)
        ADGUARD_TIMEOUT_SECONDS
                               Per-request timeout. Unset means requests wait
                               until AdGuard answers.

    Runtime:
        SYNC_MODE              "watch" (startup pass + Docker events) or
                               "once" (startup pass only) (default: watch)
        STATE_PATH             JSON state file path (default: /data/state.json)
        SYNCDNS_LABEL          Container label holding the declarations
                               (default: syncdns.rewrites)
        EVENT_RECONNECT_SECONDS
                               Delay before reopening a failed Docker event
                               stream (default: 5)
        LOG_LEVEL              DEBUG, INFO, WARNING, ERROR (default: INFO)

    Config file:
        SYNCDNS_CONFIG_PATH    Optional YAML file (default: /config/syncdns.yaml).
                               Environment variables take precedence over it.
                               Example:
                                 adguard:
                                   url: "http://adguard:3000"
                                   username: "admin"
                                   password: "secret"
                                   timeout_seconds: 10
                                 state_path: "/data/state.json"
                                 label: "syncdns.rewrites"
                                 sync_mode: "watch"
                                 event_reconnect_seconds: 5

    Docker:
        The Docker client is configured from the standard DOCKER_HOST,
        DOCKER_TLS_VERIFY and DOCKER_CERT_PATH variables.
"""

from __future__ import annotations

import json
import logging
import os
import re
import sys
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional

import docker
import requests
import yaml
from requests.auth import HTTPBasicAuth

# =============================================================================
# Configuration
# =============================================================================

DEFAULT_CONFIG_PATH = "/config/syncdns.yaml"
DEFAULT_STATE_PATH = "/data/state.json"
REWRITE_LABEL = "syncdns.rewrites"
DEFAULT_EVENT_RECONNECT_SECONDS = 5.0

SYNC_MODES = ("watch", "once")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# =============================================================================
# Logging Setup
# =============================================================================

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

# =============================================================================
# Errors
# =============================================================================


class SyncDNSError(Exception):
    """Base class for syncdns errors."""


class ConfigurationError(SyncDNSError):
    """Required configuration is missing or invalid."""


class AuthorityError(SyncDNSError):
    """A call to the DNS rewrite authority did not succeed."""


class AuthorityUnreachable(AuthorityError):
    """The authority could not be reached."""


class AuthorityBadResponse(AuthorityError):
    """The authority answered with something we could not interpret."""


class AuthorityRejected(AuthorityError):
    """The authority answered with a non-success status."""

    def __init__(self, status_code: int, detail: str = ""):
        self.status_code = status_code
        self.detail = detail
        message = f"rejected with status {status_code}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class RewriteRule:
    """A single DNS rewrite: queries for ``domain`` are answered with ``answer``."""

    domain: str
    answer: str

    def __str__(self) -> str:
        return f"{self.domain} -> {self.answer}"

    def to_dict(self) -> Dict[str, str]:
        return {"domain": self.domain, "answer": self.answer}

    @classmethod
    def from_dict(cls, data: Any) -> "RewriteRule":
        """Build a rule from a ``{"domain": ..., "answer": ...}`` mapping.

        Raises ValueError if either field is missing or not a string.
        """
        if not isinstance(data, dict):
            raise ValueError(f"expected an object, got {type(data).__name__}")
        domain = data.get("domain")
        answer = data.get("answer")
        if not isinstance(domain, str) or not isinstance(answer, str):
            raise ValueError(f"record needs string 'domain' and 'answer' fields: {data}")
        return cls(domain=domain, answer=answer)


@dataclass(frozen=True)
class RunningContainer:
    """A running container as reported by the container runtime."""

    container_id: str
    labels: Dict[str, str]
    name: str = ""


@dataclass(frozen=True)
class ContainerEvent:
    """A container lifecycle event."""

    container_id: str
    action: str


@dataclass
class Settings:
    adguard_url: str = ""
    adguard_username: str = ""
    adguard_password: str = ""
    adguard_timeout: Optional[float] = None
    state_path: str = DEFAULT_STATE_PATH
    label: str = REWRITE_LABEL
    sync_mode: str = "watch"
    event_reconnect_seconds: float = DEFAULT_EVENT_RECONNECT_SECONDS
    errors: List[str] = field(default_factory=list)


# =============================================================================
# Label Parsing
# =============================================================================

REWRITE_CLAUSE_RE = re.compile(r"Rewrite\(([^,)]+),([^)]+)\)")


def _unquote(value: str) -> str:
    """Trim whitespace and strip one layer of matching quotes."""
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def parse_rewrites_label(text: Optional[str]) -> List[RewriteRule]:
    """Extract rewrite declarations from a label value.

    The label holds zero or more ``Rewrite(<domain>,<answer>)`` clauses in any
    surrounding text. Each argument is trimmed and may be wrapped in single or
    double quotes. Clauses that do not match, or that leave an empty domain or
    answer, are skipped. Never raises.

    Example:
        >>> parse_rewrites_label("Rewrite(a.com,1.2.3.4) Rewrite('b.com', '5.6.7.8')")
        [RewriteRule(domain='a.com', answer='1.2.3.4'), RewriteRule(domain='b.com', answer='5.6.7.8')]
    """
    rules: List[RewriteRule] = []
    if not text:
        return rules

    for match in REWRITE_CLAUSE_RE.finditer(text):
        domain = _unquote(match.group(1))
        answer = _unquote(match.group(2))
        if not domain or not answer:
            logger.debug(f"Skipping incomplete rewrite clause: {match.group(0)}")
            continue
        rules.append(RewriteRule(domain=domain, answer=answer))
    return rules


# =============================================================================
# DNS Rewrite Authority Interface and Implementations
# =============================================================================


class RewriteAuthority(ABC):
    """Abstract base class for services that store DNS rewrites."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the authority name for logging."""
        pass

    @abstractmethod
    def test_connection(self) -> bool:
        """Test connection to the authority."""
        pass

    @abstractmethod
    def list_rules(self) -> List[RewriteRule]:
        """Return every rewrite currently known to the authority."""
        pass

    @abstractmethod
    def create_rule(self, rule: RewriteRule) -> None:
        """Create a rewrite. Raises AuthorityError on failure."""
        pass

    @abstractmethod
    def delete_rule(self, rule: RewriteRule) -> None:
        """Delete the rewrite matching both domain and answer."""
        pass

    def has_rule(self, rule: RewriteRule) -> bool:
        return rule in self.list_rules()


class AdGuardRewriteAuthority(RewriteAuthority):
    """AdGuard Home rewrite API.

    Calls are made once, without retries. Any status other than 200 counts as
    a failure.
    """

    def __init__(
        self, url: str, username: str, password: str, timeout: Optional[float] = None
    ):
        self._url = url.rstrip("/")
        self._auth = HTTPBasicAuth(username, password)
        self._timeout = timeout
        self._session = requests.Session()
        self._session.auth = self._auth

    @property
    def name(self) -> str:
        return "AdGuard Home"

    def test_connection(self) -> bool:
        try:
            response = self._session.get(f"{self._url}/control/status", timeout=self._timeout)
            response.raise_for_status()
            logger.info(f"{self.name} connection successful")
            return True
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to connect to {self.name}: {e}")
            return False

    def list_rules(self) -> List[RewriteRule]:
        try:
            response = self._session.get(
                f"{self._url}/control/rewrite/list", timeout=self._timeout
            )
        except requests.exceptions.RequestException as e:
            raise AuthorityUnreachable(f"{self.name} unreachable: {e}") from e

        if response.status_code != 200:
            raise AuthorityBadResponse(
                f"{self.name} rewrite list returned status {response.status_code}"
            )
        try:
            data = response.json()
        except ValueError as e:
            raise AuthorityBadResponse(f"{self.name} rewrite list is not valid JSON: {e}") from e
        if not isinstance(data, list):
            raise AuthorityBadResponse(
                f"{self.name} rewrite list: expected list, got {type(data).__name__}"
            )

        rules = []
        for r in data:
            try:
                rules.append(RewriteRule.from_dict(r))
            except ValueError:
                logger.warning(f"Skipping malformed record: {r}")
        return rules

    def create_rule(self, rule: RewriteRule) -> None:
        self._post("add", rule)

    def delete_rule(self, rule: RewriteRule) -> None:
        self._post("delete", rule)

    def _post(self, action: str, rule: RewriteRule) -> None:
        try:
            response = self._session.post(
                f"{self._url}/control/rewrite/{action}",
                json=rule.to_dict(),
                timeout=self._timeout,
            )
        except requests.exceptions.RequestException as e:
            raise AuthorityUnreachable(f"{self.name} unreachable: {e}") from e
        if response.status_code != 200:
            raise AuthorityRejected(response.status_code, (response.text or "").strip())


# =============================================================================
# Container Runtime Interface and Implementations
# =============================================================================


class ContainerRuntime(ABC):
    """Abstract base class for container runtimes."""

    @abstractmethod
    def list_running(self) -> List[RunningContainer]:
        """Return the currently running containers."""
        pass

    @abstractmethod
    def inspect_labels(self, container_id: str) -> Dict[str, str]:
        """Return the labels of a single container."""
        pass

    @abstractmethod
    def stream_events(self) -> Iterator[ContainerEvent]:
        """Yield container lifecycle events until the stream fails or ends."""
        pass


class DockerContainerRuntime(ContainerRuntime):
    """Docker Engine runtime backed by the docker SDK."""

    def __init__(self, client: docker.DockerClient):
        self._client = client

    @classmethod
    def from_env(cls) -> "DockerContainerRuntime":
        return cls(docker.from_env())

    def list_running(self) -> List[RunningContainer]:
        return [
            RunningContainer(
                container_id=container.id,
                labels=dict(container.labels or {}),
                name=container.name or "",
            )
            for container in self._client.containers.list()
        ]

    def inspect_labels(self, container_id: str) -> Dict[str, str]:
        container = self._client.containers.get(container_id)
        return dict(container.labels or {})

    def stream_events(self) -> Iterator[ContainerEvent]:
        for raw in self._client.events(decode=True, filters={"type": "container"}):
            event = _container_event_from_raw(raw)
            if event is not None:
                yield event


def _container_event_from_raw(raw: Any) -> Optional[ContainerEvent]:
    """Normalize a decoded Docker event, dropping anything that is not a container event."""
    if not isinstance(raw, dict):
        return None
    if raw.get("Type", "container") != "container":
        return None
    actor = raw.get("Actor") or {}
    container_id = raw.get("id") or (actor.get("ID") if isinstance(actor, dict) else None)
    action = raw.get("Action") or raw.get("status")
    if not container_id or not action:
        return None
    return ContainerEvent(container_id=str(container_id), action=str(action))


# =============================================================================
# State Management
# =============================================================================


class StateStore:
    """Rewrites owned by each container, mirrored to a JSON file.

    The file holds ``{container_id: [{"domain": ..., "answer": ...}, ...]}``
    and is rewritten in full after every mutation. A failed write is logged
    and the in-memory state is kept, so the file may lag behind until the
    next successful write.
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self._rules: Dict[str, List[RewriteRule]] = {}

    def __contains__(self, container_id: object) -> bool:
        return container_id in self._rules

    def load(self) -> Dict[str, List[RewriteRule]]:
        if not self.path.exists():
            self._rules = {}
            self.persist()
            return self._rules

        try:
            raw = json.loads(self.path.read_text("utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load state file {self.path}: {e}")
            self._rules = {}
            return self._rules

        if not isinstance(raw, dict):
            logger.warning(f"Ignoring state file {self.path}: expected an object")
            self._rules = {}
            return self._rules

        rules: Dict[str, List[RewriteRule]] = {}
        for container_id, entries in raw.items():
            if not isinstance(entries, list):
                logger.warning(f"Skipping malformed state entry for container {container_id}")
                continue
            owned = rules.setdefault(container_id, [])
            for entry in entries:
                try:
                    owned.append(RewriteRule.from_dict(entry))
                except ValueError:
                    logger.warning(f"Skipping malformed state record for {container_id}: {entry}")
        self._rules = rules
        return self._rules

    def get(self, container_id: str) -> List[RewriteRule]:
        return list(self._rules.get(container_id, []))

    def has(self, container_id: str, rule: RewriteRule) -> bool:
        return rule in self._rules.get(container_id, [])

    def container_ids(self) -> List[str]:
        return list(self._rules)

    def append(self, container_id: str, rule: RewriteRule) -> None:
        self._rules.setdefault(container_id, []).append(rule)
        self.persist()

    def remove(self, container_id: str) -> None:
        if self._rules.pop(container_id, None) is not None:
            self.persist()

    def snapshot(self) -> Dict[str, List[Dict[str, str]]]:
        return {
            container_id: [rule.to_dict() for rule in rules]
            for container_id, rules in self._rules.items()
        }

    def persist(self) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp_path.write_text(json.dumps(self.snapshot(), indent=2, sort_keys=True), "utf-8")
            tmp_path.replace(self.path)
        except OSError as e:
            logger.error(f"Failed to save state file {self.path}: {e}")
            return False
        return True


# =============================================================================
# Core Reconciler
# =============================================================================


def _short_id(container_id: str) -> str:
    return container_id[:12]


class Reconciler:
    """Drives the authority from container declarations.

    Rules declared by a starting container are created unless this process
    already owns them or the authority already has them. Rules owned by a
    stopping container are deleted and the container's ownership is dropped.
    Every failure ends only the step that produced it.
    """

    CREATE_ACTIONS = frozenset({"start", "unpause"})
    REMOVE_ACTIONS = frozenset({"stop", "kill", "die", "pause", "restart"})

    def __init__(
        self,
        *,
        authority: RewriteAuthority,
        runtime: ContainerRuntime,
        state_store: StateStore,
        label: str = REWRITE_LABEL,
        reconnect_delay: float = DEFAULT_EVENT_RECONNECT_SECONDS,
    ):
        self.authority = authority
        self.runtime = runtime
        self.state_store = state_store
        self.label = label
        self.reconnect_delay = reconnect_delay

    def run(self) -> None:
        self.reconcile_running()
        self.watch()

    def reconcile_running(self) -> None:
        """Ensure the declared rules of every running container exist."""
        logger.info("Checking running Docker containers...")
        try:
            containers = self.runtime.list_running()
        except (docker.errors.DockerException, requests.exceptions.RequestException) as e:
            logger.error(f"Error listing Docker containers: {e}")
            return

        for container in containers:
            if self.label not in container.labels:
                continue
            logger.info(
                f"Found {self.label} label on container "
                f"{container.name or _short_id(container.container_id)}"
            )
            self._ensure_declared(container.container_id, container.labels[self.label])

    def watch(self) -> None:
        """Handle Docker events one at a time, forever."""
        logger.info("Watching Docker events...")
        while True:
            try:
                for event in self.runtime.stream_events():
                    self.handle_event(event)
            except (docker.errors.DockerException, requests.exceptions.RequestException) as e:
                logger.error(f"Error receiving Docker events: {e}")
            else:
                logger.warning("Docker event stream ended")
            time.sleep(self.reconnect_delay)

    def handle_event(self, event: ContainerEvent) -> None:
        if event.action in self.CREATE_ACTIONS:
            try:
                labels = self.runtime.inspect_labels(event.container_id)
            except (docker.errors.DockerException, requests.exceptions.RequestException) as e:
                logger.error(f"Error inspecting container {_short_id(event.container_id)}: {e}")
                return
            if self.label not in labels:
                return
            logger.info(
                f"Found {self.label} label on {event.action} of container "
                f"{_short_id(event.container_id)}"
            )
            self._ensure_declared(event.container_id, labels[self.label])
        elif event.action in self.REMOVE_ACTIONS:
            self.release_container(event.container_id)
        else:
            logger.debug(f"Ignoring '{event.action}' event for {_short_id(event.container_id)}")

    def _ensure_declared(self, container_id: str, label_value: str) -> None:
        rules = parse_rewrites_label(label_value)
        if not rules:
            logger.warning(
                f"No valid rewrites in {self.label} of container {_short_id(container_id)}: "
                f"{label_value!r}"
            )
        for rule in rules:
            self.ensure_rule(container_id, rule)

    def ensure_rule(self, container_id: str, rule: RewriteRule) -> bool:
        """Create ``rule`` for ``container_id`` unless it already exists.

        Returns True only when the rule was created by this call.
        """
        if self.state_store.has(container_id, rule):
            logger.info(f"Rewrite {rule} already owned by container {_short_id(container_id)}")
            return False

        try:
            exists = self.authority.has_rule(rule)
        except AuthorityError as e:
            logger.error(f"Cannot check {self.authority.name} for rewrite {rule}, skipping: {e}")
            return False
        if exists:
            # Not created by us, so not ours to delete later.
            logger.info(f"Rewrite {rule} already exists in {self.authority.name}, not claiming it")
            return False

        logger.info(f"Adding rewrite {rule} to {self.authority.name}")
        try:
            self.authority.create_rule(rule)
        except AuthorityError as e:
            logger.error(f"Error adding rewrite {rule}: {e}")
            return False

        logger.info(f"Rewrite {rule} added successfully")
        self.state_store.append(container_id, rule)
        return True

    def release_container(self, container_id: str) -> None:
        """Delete every rule owned by ``container_id`` and drop its ownership."""
        if container_id not in self.state_store:
            return

        for rule in self.state_store.get(container_id):
            self._delete_rule(rule)

        self.state_store.remove(container_id)
        logger.info(f"Released rewrites of container {_short_id(container_id)}")

    def _delete_rule(self, rule: RewriteRule) -> None:
        try:
            exists = self.authority.has_rule(rule)
        except AuthorityError as e:
            logger.error(f"Cannot check {self.authority.name} for rewrite {rule}, skipping: {e}")
            return
        if not exists:
            logger.info(f"Rewrite {rule} is not in {self.authority.name}")
            return

        try:
            self.authority.delete_rule(rule)
        except AuthorityError as e:
            logger.error(f"Error removing rewrite {rule}: {e}")
            return
        logger.info(f"Rewrite {rule} removed successfully")


# =============================================================================
# Settings
# =============================================================================


def load_config_file(config_path: str) -> Dict[str, Any]:
    """Load the optional YAML config file. Returns {} when absent or unusable."""
    path = Path(config_path)
    if not path.is_file():
        return {}
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to load config from {config_path}: {e}")
        return {}
    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Config file {config_path} must contain a mapping, ignoring it")
        return {}
    return data


def _pick(env: Mapping[str, str], names: List[str], file_value: Any, default: str = "") -> str:
    for name in names:
        value = (env.get(name) or "").strip()
        if value:
            return value
    if file_value is None:
        return default
    return str(file_value).strip()


def _parse_seconds(value: str, setting: str, errors: List[str]) -> Optional[float]:
    if not value:
        return None
    try:
        seconds = float(value)
    except ValueError:
        errors.append(f"{setting} must be a number, got '{value}'")
        return None
    if seconds < 0:
        errors.append(f"{setting} must not be negative, got '{value}'")
        return None
    return seconds


def load_settings(
    environ: Optional[Mapping[str, str]] = None, config_path: Optional[str] = None
) -> Settings:
    """Build settings from the environment and the optional YAML config file."""
    env = os.environ if environ is None else environ
    if config_path is None:
        config_path = env.get("SYNCDNS_CONFIG_PATH") or DEFAULT_CONFIG_PATH

    file_config = load_config_file(config_path)
    adguard = file_config.get("adguard") or {}
    if not isinstance(adguard, dict):
        logger.warning(f"Ignoring 'adguard' section of {config_path}: expected a mapping")
        adguard = {}

    errors: List[str] = []
    timeout = _parse_seconds(
        _pick(env, ["ADGUARD_TIMEOUT_SECONDS"], adguard.get("timeout_seconds")),
        "ADGUARD_TIMEOUT_SECONDS",
        errors,
    )
    reconnect = _parse_seconds(
        _pick(env, ["EVENT_RECONNECT_SECONDS"], file_config.get("event_reconnect_seconds")),
        "EVENT_RECONNECT_SECONDS",
        errors,
    )

    return Settings(
        adguard_url=_pick(env, ["AdguardURL", "ADGUARD_URL"], adguard.get("url")),
        adguard_username=_pick(env, ["AdguardUser", "ADGUARD_USERNAME"], adguard.get("username")),
        adguard_password=_pick(
            env, ["AdguardPassword", "ADGUARD_PASSWORD"], adguard.get("password")
        ),
        adguard_timeout=timeout,
        state_path=_pick(env, ["STATE_PATH"], file_config.get("state_path"), DEFAULT_STATE_PATH),
        label=_pick(env, ["SYNCDNS_LABEL"], file_config.get("label"), REWRITE_LABEL),
        sync_mode=_pick(env, ["SYNC_MODE"], file_config.get("sync_mode"), "watch").lower(),
        event_reconnect_seconds=(
            DEFAULT_EVENT_RECONNECT_SECONDS if reconnect is None else reconnect
        ),
        errors=errors,
    )


def validate_settings(settings: Settings) -> List[str]:
    """Return a list of configuration problems; empty means usable."""
    errors = list(settings.errors)
    if not settings.adguard_url:
        errors.append("AdguardURL is required")
    if not settings.adguard_username:
        errors.append("AdguardUser is required")
    if not settings.adguard_password:
        errors.append("AdguardPassword is required")
    if settings.sync_mode not in SYNC_MODES:
        errors.append(f"Invalid SYNC_MODE: {settings.sync_mode}. Use 'watch' or 'once'")
    if not settings.label:
        errors.append("SYNCDNS_LABEL must not be empty")
    return errors


# =============================================================================
# Main
# =============================================================================


def _log_authority_rules(authority: RewriteAuthority) -> None:
    try:
        rules = authority.list_rules()
    except AuthorityError as e:
        logger.error(f"Error retrieving rewrites from {authority.name}: {e}")
        return
    logger.info(f"Rewrites in {authority.name}: {len(rules)}")
    for rule in rules:
        logger.info(f"  {rule}")


def main():
    """Main entry point."""
    logger.info("Starting syncdns: Docker labels -> AdGuard Home rewrites")

    settings = load_settings()
    errors = validate_settings(settings)
    if errors:
        for error in errors:
            logger.error(error)
        logger.error("Configuration validation failed")
        sys.exit(1)

    logger.info(f"AdGuard Home: {settings.adguard_url}")
    logger.info(f"State file: {settings.state_path}")
    logger.info(f"Declaration label: {settings.label}")
    logger.info(f"Sync mode: {settings.sync_mode}")

    authority = AdGuardRewriteAuthority(
        settings.adguard_url,
        settings.adguard_username,
        settings.adguard_password,
        timeout=settings.adguard_timeout,
    )
    if not authority.test_connection():
        logger.warning(f"{authority.name} is not reachable yet, continuing")
    _log_authority_rules(authority)

    try:
        runtime = DockerContainerRuntime.from_env()
    except docker.errors.DockerException as e:
        logger.error(f"Error creating Docker client: {e}")
        sys.exit(1)

    state_store = StateStore(settings.state_path)
    state_store.load()
    owners = state_store.container_ids()
    if owners:
        logger.info(f"Loaded state for {len(owners)} container(s)")

    reconciler = Reconciler(
        authority=authority,
        runtime=runtime,
        state_store=state_store,
        label=settings.label,
        reconnect_delay=settings.event_reconnect_seconds,
    )

    try:
        if settings.sync_mode == "once":
            reconciler.reconcile_running()
            return
        reconciler.run()
    except KeyboardInterrupt:
        logger.info("Shutting down...")


if __name__ == "__main__":
    main()
