"""
Input/Output Manager (HDF5)
Handles saving and loading simulation results (with their configuration) to .h5 files.
"""
import json
import logging
from dataclasses import asdict
from importlib.metadata import version, PackageNotFoundError

import h5py
import numpy as np

from plasmafurnace.controller.fea.analysis.energy import EnergySummary
from plasmafurnace.controller.fea.analysis.results import SimulationResult, TerminationReason
from plasmafurnace.model.state import SimulationConfig

# Get module logger
logger = logging.getLogger(__name__)

try:
    APP_VERSION = version("plasmafurnace")
except PackageNotFoundError:
    APP_VERSION = "0.0.0-dev"

FIELD_DATASETS = ("temperatures", "enthalpies", "melt_fractions", "vapor_fractions")


class IOManager:

    @staticmethod
    def save_result(result: SimulationResult, filepath: str) -> None:
        logger.info(f"Saving result to: {filepath}")
        with h5py.File(filepath, "w") as f:
            f.attrs["version"] = APP_VERSION

            # --- 1. SAVE CONFIGURATION ---
            # Stored as JSON so the file is self-describing
            config_json = json.dumps(result.config.to_dict())
            if len(config_json) > 60000:  # HDF5 attribute size limit is 64KB
                f.create_dataset("config", data=np.void(config_json.encode("utf-8")))
            else:
                f.attrs["config_json"] = config_json

            # --- 2. SAVE RUN SUMMARY ---
            grp_run = f.create_group("run")
            grp_run.attrs["execution_time"] = result.execution_time
            grp_run.attrs["steps_executed"] = result.steps_executed
            grp_run.attrs["termination"] = str(result.termination)
            grp_run.attrs["time_step"] = result.time_step
            grp_run.attrs["stable_time_step"] = result.stable_time_step

            grp_energy = f.create_group("energy")
            for key, val in asdict(result.energy).items():
                grp_energy.attrs[key] = val

            # --- 3. SAVE FIELD HISTORY ---
            grp_res = f.create_group("results")
            grp_res.create_dataset("times", data=np.asarray(result.times))
            for name in FIELD_DATASETS:
                grp_res.create_dataset(name, data=np.asarray(getattr(result, name)), compression="gzip")
            logger.debug(f"Saved {result.n_frames} result frames.")

    @staticmethod
    def load_result(filepath: str) -> SimulationResult:
        logger.info(f"Loading result from: {filepath}")
        with h5py.File(filepath, "r") as f:
            file_version = f.attrs.get("version", "unknown")
            if file_version != APP_VERSION:
                logger.warning(f"Result file version {file_version} differs from application version {APP_VERSION}.")

            if "config_json" in f.attrs:
                config_json = f.attrs["config_json"]
            else:
                config_json = f["config"][()].tobytes().decode("utf-8")
            config = SimulationConfig.from_dict(json.loads(config_json))

            grp_run = f["run"]
            energy = EnergySummary(**{key: float(val) for key, val in f["energy"].attrs.items()})
            grp_res = f["results"]
            fields = {name: grp_res[name][()] for name in FIELD_DATASETS}

            return SimulationResult(
                config=config,
                times=grp_res["times"][()],
                execution_time=float(grp_run.attrs["execution_time"]),
                steps_executed=int(grp_run.attrs["steps_executed"]),
                termination=TerminationReason(str(grp_run.attrs["termination"])),
                time_step=float(grp_run.attrs["time_step"]),
                stable_time_step=float(grp_run.attrs["stable_time_step"]),
                energy=energy,
                **fields,
            )
