# Core services
from binaries.catalog_client import ReleaseCatalogClient
from binaries.installer import ArchiveInstaller
from server.process_supervisor import ProcessSupervisor
from services.binaries_lease import BinariesLease
from services.config_store import ConfigStore
from services.event_bus import EventBus
from services.log_buffer import LogBuffer

# Command boundary
from app.commands import ControlCenter

# Standard utilities
import httpx

def build_container(cfg, *, client_factory=None, catalog_session=None):
    """
    Dependency container builder
    Responsibility:
     - Takes a fully loaded config object
     - Constructs all shared services exactly once
     - Wires dependencies together
     - Returns a dictionary of ready-to-use services

    `client_factory` (an httpx.AsyncClient factory) and `catalog_session`
    (a requests.Session) can be injected to redirect network access.
    """
    control_cfg = cfg.control

    # ---------- Events + user-facing log ----------
    events = EventBus()
    logs = LogBuffer(
        capacity=control_cfg.log_capacity,
        log_file=cfg.paths.log_file,
        flush_every=control_cfg.log_flush_every,
        events=events,
    )

    # ---------- Persistence + shared binaries folder ----------
    store = ConfigStore(cfg.paths)
    lease = BinariesLease()

    # ---------- Release catalog ----------
    catalog = ReleaseCatalogClient(
        api_url=control_cfg.release_api_url,
        user_agent=control_cfg.user_agent,
        github_token=control_cfg.github_token,
        timeout_s=control_cfg.request_timeout_s,
        session=catalog_session,
    )

    # ---------- Archive installer ----------
    if client_factory is None:
        def client_factory():
            return httpx.AsyncClient(
                timeout=httpx.Timeout(control_cfg.download_timeout_s, connect=control_cfg.request_timeout_s),
                follow_redirects=False,
            )

    installer = ArchiveInstaller(
        store,
        cfg.paths,
        logs,
        events,
        lease,
        client_factory=client_factory,
        user_agent=control_cfg.user_agent,
        max_redirects=control_cfg.max_redirects,
        min_archive_bytes=control_cfg.min_archive_bytes,
    )

    # ---------- Server process ----------
    supervisor = ProcessSupervisor(
        store,
        logs,
        events,
        lease,
        settle_delay_s=control_cfg.settle_delay_s,
        stop_grace_s=control_cfg.stop_grace_s,
        kill_timeout_s=control_cfg.kill_timeout_s,
    )

    control = ControlCenter(
        catalog=catalog,
        installer=installer,
        supervisor=supervisor,
        store=store,
        logs=logs,
        events=events,
        model_extension=control_cfg.model_extension,
    )

    # ---- RETURN CONTAINER -----
    return {
        "cfg": cfg,
        "events": events,
        "logs": logs,
        "store": store,
        "lease": lease,
        "catalog": catalog,
        "installer": installer,
        "supervisor": supervisor,
        "control": control,
    }
