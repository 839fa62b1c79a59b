"""
Nextcloud Workspace configuration.

Wires environment variables (secrets, service URLs) into the host's per-app
config store through the host administration capability. Collabora is
mandatory; antivirus, full text search, Talk signaling/TURN and the AI
integration are optional blocks that are skipped with a warning when their
environment variables are incomplete.
"""

from __future__ import annotations

import json
import logging
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ncw_ops.core.errors import HostResponseError, MissingInputError
from ncw_ops.core.host.occ import HostAdmin
from ncw_ops.schemas.config import ConfigureIn

logger = logging.getLogger(__name__)

ELASTIC_SEARCH_PLATFORM = "OCA\\FullTextSearch_Elasticsearch\\Platform\\ElasticSearchPlatform"
ELASTIC_CA_CERT = "/etc/elasticsearch-certs/ca.crt"
DEFAULT_AV_LIMIT = "314572800"

FILES_FULLTEXTSEARCH_SETTINGS = {
    "files_audio": "0",
    "files_encrypted": "0",
    "files_external": "1",
    "files_federated": "0",
    "files_group_folders": "1",
    "files_image": "0",
    "files_local": "1",
    "files_office": "1",
    "files_pdf": "1",
    "files_size": "20",
}

_SETTING_CLASS = re.compile(r"^OCA\\[A-Za-z0-9_\\]+$")


def parse_admin_delegations(output: str) -> dict[str, set[str]]:
    """
    Parse the tables printed by ``occ admin-delegation:show``.

    Each table row holding a fully qualified setting class (``OCA\\...``)
    maps that class to the groups listed in the last cell of the row.

    Args:
        output: Raw command output

    Returns:
        Setting class -> delegated group ids
    """
    delegations: dict[str, set[str]] = {}
    for line in output.splitlines():
        if "|" not in line:
            continue
        cells = [cell.strip() for cell in line.strip().strip("|").split("|")]
        classes = [cell for cell in cells if _SETTING_CLASS.match(cell)]
        if not classes:
            continue
        setting_class = classes[0]
        index = cells.index(setting_class)
        groups = set()
        if index < len(cells) - 1:
            groups = {group.strip() for group in cells[-1].split(",") if group.strip()}
        delegations.setdefault(setting_class, set()).update(groups)
    return delegations


@dataclass
class ConfigureResult:
    applied: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


class Configurator:
    """
    Apply the workspace configuration to an installed instance.

    Args:
        host: Host administration capability
        settings: ``configure`` section of the settings file
        env: Environment mapping (defaults to ``os.environ``)
    """

    def __init__(
        self,
        host: HostAdmin,
        settings: ConfigureIn | None = None,
        env: Mapping[str, str] | None = None,
    ):
        self.host = host
        self.settings = settings or ConfigureIn()
        self.env = os.environ if env is None else env
        self.result = ConfigureResult()

    # ── Environment helpers ───────────────────────────────────────────────

    def _get(self, name: str, default: str = "") -> str:
        return self.env.get(name) or default

    def _optional_env(self, block: str, *names: str) -> dict[str, str] | None:
        missing = [name for name in names if not self.env.get(name)]
        for name in missing:
            logger.warning("%s environment variable is not set", name)
        if missing:
            logger.warning("%s configuration skipped due to missing environment variables", block)
            self.result.skipped.append(block)
            return None
        return {name: self.env[name] for name in names}

    def _require_env(self, block: str, *names: str) -> dict[str, str]:
        missing = [name for name in names if not self.env.get(name)]
        if missing:
            raise MissingInputError(
                f"{block}: {', '.join(missing)} environment variable is not set"
            )
        return {name: self.env[name] for name in names}

    # ── Steps ─────────────────────────────────────────────────────────────

    def verify_installation(self) -> None:
        logger.info("Verifying Nextcloud Workspace installation status...")
        if not self.host.is_installed():
            raise MissingInputError("Nextcloud is not installed, abort")

    def configure_theming(self) -> None:
        logger.info("Configuring Nextcloud Workspace theming...")
        theming = self.settings.theming
        self.host.theming_config("imprintUrl", " ")
        self.host.theming_config("privacyUrl", " ")
        self.host.theming_config("primary_color", theming.primary_color)
        self.host.set_app_config("theming", "background_color", theming.background_color)
        self.host.theming_config("disable-user-theming", "yes")
        self.host.theming_config("disable_admin_theming", "yes")
        self.host.set_app_config("theming", "backgroundMime", "backgroundColor")

        homepage = self.host.get_system_config("ionos_homepage")
        if homepage:
            self.host.theming_config("url", homepage)
        self.result.applied.append("theming")

    def configure_collabora(self) -> None:
        logger.info("Configuring Collabora integration...")
        wopi_url = self._require_env("richdocuments", "COLLABORA_WOPI_URL")["COLLABORA_WOPI_URL"]

        self.host.disable_app("richdocuments")
        self.host.enable_app("richdocuments")
        self.host.set_app_config("richdocuments", "wopi_url", wopi_url)
        self.host.set_app_config("richdocuments", "public_wopi_url", wopi_url)
        self.host.set_app_config("richdocuments", "enabled", "yes")

        self_signed = self._get("COLLABORA_SELF_SIGNED") == "true"
        self.host.set_app_config(
            "richdocuments",
            "disable_certificate_verification",
            "yes" if self_signed else "no",
        )
        self.host.run("richdocuments:activate-config")
        self.result.applied.append("richdocuments")

    def configure_notify_push(self) -> None:
        logger.info("Configure notify_push app")
        self.host.enable_app("notify_push")
        self.result.applied.append("notify_push")

    def configure_antivirus(self) -> None:
        logger.info("Configure files_antivirus app")
        self.host.disable_app("files_antivirus")

        env = self._optional_env(
            "files_antivirus",
            "CLAMAV_HOST",
            "CLAMAV_PORT",
            "CLAMAV_MAX_FILE_SIZE",
            "CLAMAV_MAX_STREAM_LENGTH",
        )
        if env is None:
            return

        self.host.set_app_config("files_antivirus", "av_mode", "daemon")
        self.host.set_app_config("files_antivirus", "av_host", env["CLAMAV_HOST"])
        self.host.set_app_config("files_antivirus", "av_port", env["CLAMAV_PORT"])
        self.host.set_app_config("files_antivirus", "av_max_file_size", env["CLAMAV_MAX_FILE_SIZE"])
        self.host.set_app_config(
            "files_antivirus", "av_stream_max_length", env["CLAMAV_MAX_STREAM_LENGTH"]
        )
        self.host.enable_app("files_antivirus")
        logger.info(
            "files_antivirus configured with host: %s, port: %s",
            env["CLAMAV_HOST"],
            env["CLAMAV_PORT"],
        )
        self.result.applied.append("files_antivirus")

    def configure_fulltextsearch(self) -> None:
        logger.info("Configuring Elasticsearch integration...")
        env = self._optional_env(
            "fulltextsearch",
            "ELASTIC_NEXTCLOUD_USERNAME",
            "ELASTIC_NEXTCLOUD_PASSWORD",
            "ELASTIC_SEARCH_INDEX_NAME",
        )
        if env is None:
            return

        for app in (
            "fulltextsearch",
            "files_fulltextsearch",
            "fulltextsearch_elasticsearch",
            "files_fulltextsearch_tesseract",
        ):
            logger.info("Enabling %s...", app)
            self.host.enable_app(app)

        self.host.set_app_config("fulltextsearch", "search_platform", ELASTIC_SEARCH_PLATFORM)
        self.host.set_app_config("fulltextsearch", "app_navigation", "1")

        elastic_host = "https://{user}:{password}@{host}:{port}".format(
            user=env["ELASTIC_NEXTCLOUD_USERNAME"],
            password=env["ELASTIC_NEXTCLOUD_PASSWORD"],
            host=self._get("ELASTIC_HOST", "elasticsearch.elasticsearch"),
            port=self._get("ELASTIC_PORT", "9200"),
        )
        self.host.set_app_config(
            "fulltextsearch_elasticsearch", "elastic_host", elastic_host, sensitive=True
        )
        self.host.set_app_config(
            "fulltextsearch_elasticsearch", "elastic_index", env["ELASTIC_SEARCH_INDEX_NAME"]
        )
        self.host.set_app_config("fulltextsearch_elasticsearch", "analyzer_tokenizer", "standard")
        self.host.set_app_config("fulltextsearch_elasticsearch", "elastic_ssl_cert", ELASTIC_CA_CERT)
        self.host.set_app_config("fulltextsearch_elasticsearch", "elastic_ssl_cert_verify", "1")

        for key, value in FILES_FULLTEXTSEARCH_SETTINGS.items():
            self.host.set_app_config("files_fulltextsearch", key, value)

        if self._get("ELASTIC_DEBUG_ENABLED") in ("1", "true"):
            logger.info("Enabling debug logging...")
            self.host.set_system_config("loglevel", "0")
            self.host.set_app_config("fulltextsearch_elasticsearch", "debug", "1")
            self.host.set_app_config("fulltextsearch", "debug", "1")
        else:
            logger.info("Skipping debug logging (ELASTIC_DEBUG_ENABLED not set to 1/true)")

        self.result.applied.append("fulltextsearch")

    def _list_json(self, *args: str) -> Any:
        output = self.host.run(*args)
        try:
            return json.loads(output) if output.strip() else []
        except json.JSONDecodeError as exc:
            raise HostResponseError(f"Failed to parse output of 'occ {' '.join(args)}': {output}") from exc

    def configure_talk(self) -> None:
        logger.info("Configuring Talk signaling and TURN servers...")
        applied = False

        signaling = self._optional_env("talk signaling", "SIGNALING_URL", "SIGNALING_SECRET")
        if signaling is not None:
            listed = self._list_json("talk:signaling:list", "--output=json")
            servers = listed.get("servers", []) if isinstance(listed, dict) else listed
            known = {entry.get("server") for entry in servers if isinstance(entry, dict)}
            if signaling["SIGNALING_URL"] in known:
                logger.info("Signaling server %s already configured", signaling["SIGNALING_URL"])
            else:
                self.host.run(
                    "talk:signaling:add",
                    signaling["SIGNALING_URL"],
                    signaling["SIGNALING_SECRET"],
                    "--verify",
                )
            applied = True

        turn = self._optional_env("talk turn", "TURN_SERVER", "TURN_SECRET")
        if turn is not None:
            listed = self._list_json("talk:turn:list", "--output=json")
            servers = listed.get("servers", []) if isinstance(listed, dict) else listed
            known = {entry.get("server") for entry in servers if isinstance(entry, dict)}
            if turn["TURN_SERVER"] in known:
                logger.info("TURN server %s already configured", turn["TURN_SERVER"])
            else:
                self.host.run(
                    "talk:turn:add",
                    f"--secret={turn['TURN_SECRET']}",
                    "--",
                    "turn,turns",
                    turn["TURN_SERVER"],
                    "udp,tcp",
                )
            applied = True

        if applied:
            self.result.applied.append("talk")

    def configure_ai(self) -> None:
        logger.info("Configuring AI integration...")
        env = self._optional_env("integration_openai", "AI_API_URL", "AI_API_KEY")
        if env is None:
            return

        self.host.enable_app("integration_openai")
        self.host.set_app_config("integration_openai", "url", env["AI_API_URL"])
        self.host.set_app_config("integration_openai", "api_key", env["AI_API_KEY"], sensitive=True)

        for task_type, enabled in self.settings.task_types.items():
            self.host.run("taskprocessing:task-type:set-enabled", task_type, "1" if enabled else "0")
        self.result.applied.append("integration_openai")

    def configure_admin_delegation(self) -> None:
        delegation = self.settings.admin_delegation
        if not delegation.group or not delegation.settings_classes:
            logger.debug("No admin delegation configured")
            return

        logger.info("Configuring admin delegation for group '%s'...", delegation.group)
        current = parse_admin_delegations(self.host.run("admin-delegation:show"))
        for setting_class in delegation.settings_classes:
            if delegation.group in current.get(setting_class, set()):
                logger.debug("%s already delegated to %s", setting_class, delegation.group)
                continue
            self.host.run("admin-delegation:add", setting_class, delegation.group)
            logger.info("Delegated %s to %s", setting_class, delegation.group)
        self.result.applied.append("admin_delegation")

    def configure_apps(self) -> None:
        logger.info("Configure apps ...")
        for app in self.settings.base_apps:
            logger.info("Enable %s app", app)
            self.host.enable_app(app)

        self.configure_antivirus()

        logger.info("Configure viewer app")
        self.host.set_app_config("viewer", "always_show_viewer", "yes", value_type="string")

        self.configure_collabora()
        self.configure_notify_push()
        self.configure_fulltextsearch()
        self.configure_talk()
        self.configure_ai()
        self.configure_admin_delegation()

        for app in self.settings.late_apps:
            logger.info("Enable %s app", app)
            self.host.enable_app(app)

    def run(self) -> ConfigureResult:
        logger.info("Starting Nextcloud Workspace configuration process...")
        self.verify_installation()
        self.configure_theming()
        self.configure_apps()
        logger.info("Nextcloud Workspace configuration completed successfully")
        return self.result
