"""Build orchestration: load the site, sync remote sources, build the combined feed"""

import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

from src.config import AppConfig, config
from src.models.site import Site
from src.services.combined_feed import CombinedFeedBuilder
from src.services.git_checkout import CacheEntryConflictError, CheckoutEngine
from src.services.item_index import build_item_indexes
from src.services.project_data_reader import ProjectDataReader
from src.services.site_loader import SiteLoader
from src.services.spec_builder import SpecBuilder
from src.services.sync_policy import SyncPolicy
from src.services.telemetry import get_telemetry_service
from src.utils.site_config_loader import ConfigurationError, load_site_config


def setup_logging(level: str = "INFO") -> None:
    """Configure logging for CLI (stdout)"""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def _print_build_summary(site: Site) -> None:
    """Print build completion summary"""
    print("\n" + "=" * 80)
    print("Build Complete!")
    print("=" * 80)
    print(f"Site source: {site.source}")
    print(f"Hub site: {site.is_hub}")
    for label, collection in site.collections.items():
        print(f"  • {label}: {len(collection.docs)} documents, {len(collection.files)} files")
    print(f"Spec pages built: {len(site.pages)}")
    print(f"Combined posts: {site.published.get('num_posts_combined', 0)}")
    print("=" * 80)


def build(
    site_source: str | Path | None = None,
    app_config: AppConfig | None = None,
    spec_builder: SpecBuilder | None = None,
) -> Site:
    """
    Complete build process: load → sync → read → combine

    Args:
        site_source: Site source directory (defaults to the configured one)
        app_config: Application settings (defaults to the global config)
        spec_builder: Builds spec pages (optional)

    Returns:
        The site with all collections read and build state published

    Raises:
        ConfigurationError: If the site configuration is invalid
        CacheEntryConflictError: If a checkout tracks a different remote than declared
    """
    app_config = app_config or config
    source = Path(site_source or app_config.site_source)

    print("=" * 80)
    print("Open Project Data Build Starting")
    print("=" * 80)

    print("\n[1/4] Loading site configuration...")
    site_config = load_site_config(
        source / app_config.site_config_file, app_config.refresh_remote_data
    )
    print(f"✓ Loaded configuration (refresh: {site_config.refresh_remote_data.value})")

    print("\n[2/4] Reading local collections...")
    site = SiteLoader().load(source, site_config)
    print(f"✓ Read {len(site.collections)} collections from {site.source}")

    print("\n[3/4] Fetching remote project data...")
    engine = CheckoutEngine(
        SyncPolicy(site_config.refresh_remote_data),
        git_executable=app_config.git_executable,
        remote_name=app_config.default_remote_name,
        ssh_command=app_config.git_ssh_command,
    )
    ProjectDataReader(
        site,
        engine,
        spec_builder=spec_builder,
        telemetry=get_telemetry_service(),
        default_branch=app_config.default_repo_branch,
        docs_subtree=app_config.default_docs_subtree,
    ).read()
    print("✓ Remote data read")

    print("\n[4/4] Building combined feed and item indexes...")
    CombinedFeedBuilder().generate(site)
    build_item_indexes(site)
    print(f"✓ {site.published['num_posts_combined']} posts combined")

    _print_build_summary(site)
    return site


def main() -> int:
    """
    Main entry point for the build CLI

    Returns:
        int: Exit code (0 for success, 1 for failure)
    """
    # Load .env file first (won't override existing env vars)
    if Path(".env").exists():
        load_dotenv()

    logger = logging.getLogger(__name__)
    try:
        app_config = AppConfig()
    except ValidationError as e:
        setup_logging()
        logger.error(f"Configuration error: {e}")
        return 1
    setup_logging(app_config.log_level)

    site_source = sys.argv[1] if len(sys.argv) > 1 else None

    try:
        build(site_source, app_config)
        return 0
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except CacheEntryConflictError as e:
        logger.error(f"Checkout conflict: {e}")
        return 1
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        return 1
    finally:
        get_telemetry_service().shutdown()


if __name__ == "__main__":
    sys.exit(main())
