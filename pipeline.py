import asyncio
import os

from depcore.bundler import BundleReport
from depcore.copyplan import plan_copy
from depcore.errors import DeployError, MissingEntryModule, ModuleIOError
from depcore.extractor import extract_imports
from depcore.logs import debug_log, log, warn
from depcore.matcher import join_all, match_site
from depcore.models import EntryModule, FolderOutcome, FolderStatus, RunReport
from depcore.paths import read_text
from depcore.registry import build_registry, write_registry
from depcore.resolver import resolve_site
from depcore.rewriter import rewrite_module


# ==========================================
# 1. PACKAGE DISCOVERY
# ==========================================
async def list_package_folders(config):
    """Top-level folders of the root that are not excluded, sorted by name."""
    debug_log(f"Listing package folders in {config.root}")
    try:
        names = await asyncio.to_thread(os.listdir, config.root)
    except OSError as e:
        raise ModuleIOError("Could not list package folders", action="getFunctionFolders",
                            path=config.root, cause=e)
    excluded = set(config.exclude_folders)
    return sorted(
        name for name in names
        if name not in excluded and os.path.isdir(os.path.join(config.root, name))
    )


async def read_entry_module(folder, config):
    path = os.path.join(config.root, folder, config.entry_file)
    try:
        text = await asyncio.to_thread(read_text, path)
    except FileNotFoundError as e:
        raise MissingEntryModule(f"No {config.entry_file} in '{folder}'", path=path, cause=e)
    except (OSError, UnicodeDecodeError) as e:
        raise ModuleIOError("Could not read the entry module", path=path, cause=e)
    return EntryModule(path=path, raw_text=text)


# ==========================================
# 2. PER-FOLDER SUB-PIPELINE
# ==========================================
async def analyze_module(entry, config):
    """Extract, resolve and match every import site of one entry module."""
    sites = extract_imports(entry.raw_text)
    debug_log(f"{entry.path}: {len(sites)} import site(s)")
    for site in sites:
        resolve_site(site, entry.path, config.root)
    await join_all(
        match_site(site, config.excluded_paths, config.depth_threshold) for site in sites
    )
    # The registry include of an already rewritten module must not bind the registry itself
    registry_path = os.path.normpath(config.registry_path)
    for site in sites:
        if registry_path in site.resolved_files:
            site.resolved_files = [f for f in site.resolved_files if f != registry_path]
    return sites


async def process_folder(folder, config, write=True):
    """
    Run one folder's sub-pipeline to a terminal FolderOutcome.

    Folder-level failures are returned, never raised, so sibling folders are unaffected.
    """
    debug_log(f"Start folder: {folder}")
    try:
        entry = await read_entry_module(folder, config)
        try:
            sites = await analyze_module(entry, config)
        except OSError as e:
            raise ModuleIOError("Could not search for import targets", action="resolvePaths",
                                path=entry.path, cause=e)
        output = config.output_path(entry.path) if write else None
        replacements = 0
        if write:
            replacements = await rewrite_module(entry, sites, output, config.registry_path,
                                                config.registry_global)
    except MissingEntryModule as e:
        warn(f"Skipping '{folder}': {e.message}")
        return FolderOutcome(folder=folder, status=FolderStatus.SKIPPED, error=e.to_payload())
    except DeployError as e:
        warn(f"Folder '{folder}' failed during {e.action}: {e.message}")
        return FolderOutcome(folder=folder, status=FolderStatus.FAILED, error=e.to_payload())
    debug_log(f"Done folder: {folder} ({replacements} replacement(s))")
    return FolderOutcome(folder=folder, status=FolderStatus.OK, entry_module=entry.path,
                         output_module=output, sites=sites, replacements=replacements)


async def settle_folders(folders, config, write=True):
    """Run all folders concurrently and wait for every one of them to finish."""
    results = await asyncio.gather(
        *(process_folder(folder, config, write) for folder in folders),
        return_exceptions=True,
    )
    outcomes = []
    for folder, result in zip(folders, results):
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            error = DeployError("Unexpected failure", action="catalogDependencyFiles", cause=result)
            warn(f"Folder '{folder}' failed: {result}")
            result = FolderOutcome(folder=folder, status=FolderStatus.FAILED, error=error.to_payload())
        outcomes.append(result)
    return outcomes


# ==========================================
# 3. FAN-IN: REGISTRY, BUNDLE, REPORT
# ==========================================
async def run_pipeline(config, bundler=None):
    """
    Resolve, rewrite and register every package folder, then hand off to the bundler.

    Returns:
        RunReport

    Raises:
        DeployError: for run-level failures (folder listing, registry write, bundler)
    """
    log(f"Start: createDistribution ({config.root})")
    folders = await list_package_folders(config)
    outcomes = await settle_folders(folders, config)

    ok = [o for o in outcomes if o.ok]
    registry = build_registry(outcomes, config.root, config.registry_path, config.registry_global,
                              ignore=[o.output_module for o in ok if o.output_module])
    await write_registry(registry, config.registry_path)
    log(f"Registry written: {config.registry_path} ({len(registry.entries)} file(s))")

    report = RunReport(
        registry_path=config.registry_path,
        rewritten=[o.output_module for o in ok],
        resolved_files=len(registry.entries),
        registry_entries=len(registry.keys()),
        skipped=[o.folder for o in outcomes if o.status == FolderStatus.SKIPPED],
        failures=[{"folder": o.folder, **o.error} for o in outcomes if o.status == FolderStatus.FAILED],
    )

    bundle = BundleReport()
    if bundler is not None:
        log("Running bundler...")
        bundle = await asyncio.to_thread(bundler.bundle, config.registry_path, config.dist_path)
    report.packed_files = bundle.packed_files
    report.warnings = bundle.warnings
    report.copy_skip_list = sorted(set([o.entry_module for o in ok] + bundle.packed_files))
    report.copy_plan = await asyncio.to_thread(plan_copy, config, report.copy_skip_list)

    log(f"Rewrote {len(report.rewritten)} entry module(s); "
        f"{len(report.skipped)} skipped, {len(report.failures)} failed.")
    return report


async def scan_tree(config):
    """Analysis only: extract, resolve and match without writing anything."""
    folders = await list_package_folders(config)
    return await settle_folders(folders, config, write=False)


def create_distribution(config, bundler=None):
    return asyncio.run(run_pipeline(config, bundler))


def scan(config):
    return asyncio.run(scan_tree(config))
