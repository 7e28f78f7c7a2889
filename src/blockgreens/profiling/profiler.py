# Copyright (c) 2024 ETH Zurich and the authors of the blockgreens package.

import json
import os
import pickle
import sys
import threading
import time
import warnings
from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime
from functools import wraps
from typing import Literal

from blockgreens import xp

# Set the profiling level.
PROFILE_LEVEL = os.environ.get("PROFILE_LEVEL", "basic").lower()
if PROFILE_LEVEL not in ("off", "basic", "api", "debug", "full"):
    warnings.warn(f"Invalid profiling level {PROFILE_LEVEL=}. Defaulting to 'basic'.")
    PROFILE_LEVEL = "basic"

# Define the mapping of profiling levels to numbers.
_level_to_num = {"off": 0, "basic": 1, "api": 2, "debug": 3, "full": 4}


class _ProfilingEvent:
    """A profiling event object.

    This is basically just there to parse the names of the profiled
    functions.

    Parameters
    ----------
    event : list
        The profiling event data.

    Attributes
    ----------
    datetime : datetime
        The timestamp of the event.
    prof_type : str
        The type of the profiling event.
    qualname : str
        The qualified name of the profiled function.
    host_time : float
        The time spent on the host.
    thread : int
        Identifier of the thread in which the event occurred.

    """

    def __init__(self, event: list):
        """Initializes the profiling event object."""
        timestamp, name, host_time, thread = event
        self.datetime = datetime.fromtimestamp(timestamp)

        # Names will look like "<function Class.do_something at 0x...>".
        prof_type, qualname, *__ = name.strip("<>").split()
        self.prof_type = prof_type
        self.qualname = qualname

        self.host_time = host_time
        self.thread = thread


class _ProfilingRun:
    """A profiling run object.

    Parameters
    ----------
    eventlog : list
        A list of profiling events.

    Attributes
    ----------
    profiling_events : list[_ProfilingEvent]
        A list of parsed profiling events.

    """

    def __init__(self, eventlog: list[list]):
        """Initializes the profiling run object."""
        self.profiling_events = [_ProfilingEvent(event) for event in eventlog]

    def get_stats(self) -> dict:
        """Returns the profiling statistics.

        This reports some statistics for each profiled function.

        Returns
        -------
        dict
            A dictionary containing the profiling statistics.

        """
        host_stats = defaultdict(list)
        threads = defaultdict(set)
        for event in self.profiling_events:
            host_stats[event.qualname].append(event.host_time)
            threads[event.qualname].add(event.thread)

        stats = {}
        for key in host_stats:
            host_times = xp.array(host_stats[key])

            num_calls = len(host_times)
            num_threads = len(threads[key])
            total_host_time = float(xp.sum(host_times))

            stats[key] = {
                "num_calls": num_calls,
                "num_participating_threads": num_threads,
                "num_calls_per_thread": num_calls / num_threads,
                "total_host_time": total_host_time,
                "average_host_time": float(xp.mean(host_times)),
                "median_host_time": float(xp.median(host_times)),
                "std_host_time": float(xp.std(host_times)),
                "min_host_time": float(xp.min(host_times)),
                "max_host_time": float(xp.max(host_times)),
            }

        return stats


class Profiler:
    """Singleton Profiler class to collect and report profiling data.

    Attributes
    ----------
    eventlog : list
        A list of profiling data.

    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(Profiler, cls).__new__(cls)
            cls._instance.eventlog = []

        return cls._instance

    def get_stats(self) -> dict:
        """Computes statistics from the collected profiling data.

        Returns
        -------
        dict
            A dictionary containing the profiling data.

        """
        return _ProfilingRun(list(self.eventlog)).get_stats()

    def reset(self) -> None:
        """Clears the event log."""
        self.eventlog.clear()

    def dump_stats(self, filepath: str, format: Literal["pickle", "json"] = "pickle"):
        """Dumps the profiling statistics to a file.

        Parameters
        ----------
        filepath : str
            The path to the output file. The correct file extension
            will be appended based on the format.
        format : {"pickle", "json"}, optional
            The format in which to save the profiling data.

        """
        if format not in ("pickle", "json"):
            raise ValueError(f"Invalid format {format}.")

        stats = self.get_stats()

        filepath = os.fspath(filepath)
        if format == "pickle":
            if not filepath.endswith(".pkl"):
                filepath += ".pkl"
            with open(filepath, "wb") as pickle_file:
                pickle.dump(stats, pickle_file)
        else:
            if not filepath.endswith(".json"):
                filepath += ".json"
            with open(filepath, "w") as json_file:
                json.dump(stats, json_file, indent=4)

    def profile(self, level: str = PROFILE_LEVEL):
        """Profiles a function and adds profiling data to the event log.

        Notes
        -----
        The `PROFILE_LEVEL` environment variable controls which
        functions are profiled. The following levels are implemented:
        - `"off"`: The function is not profiled.
        - `"basic"`: The function is part of the core profiling.
        - `"api"`: The function is part of the API and does not always
          need to be timed.
        - `"debug"`: This function only needs to be profiled for
          debugging purposes.
        - `"full"`: The function does not even need to be profiled for
          debugging purposes unless the user explicitly requests it.

        Parameters
        ----------
        level : str, optional
            The profiling level of the function. The function is
            profiled if its level does not exceed `PROFILE_LEVEL`.

        Returns
        -------
        callable
            The wrapped function with profiling according to the
            specified level.

        """
        if level not in ("off", "basic", "api", "debug", "full"):
            raise ValueError(f"Invalid profiling level {level}.")

        def decorator(func):
            if _level_to_num[level] > _level_to_num[PROFILE_LEVEL]:
                return func

            name = func.__str__()

            @wraps(func)
            def wrapper(*args, **kwargs):
                timestamp = time.time()
                host_time = -time.perf_counter()

                result = func(*args, **kwargs)

                host_time += time.perf_counter()

                self.eventlog.append(
                    (timestamp, name, host_time, threading.get_ident())
                )

                return result

            return wrapper

        return decorator

    @contextmanager
    def profile_range(self, label: str = "range", level: str = PROFILE_LEVEL):
        """Profiles a range of code.

        Parameters
        ----------
        label : str, optional
            A label for the profiled range. This is used to identify
            the profiled range in the profiling data.
        level : str, optional
            The profiling level of the range, see `profile`.

        Yields
        ------
        None
            The context manager does not return anything.

        """
        if level not in ("off", "basic", "api", "debug", "full"):
            raise ValueError(f"Invalid profiling level {level}.")

        if _level_to_num[level] > _level_to_num[PROFILE_LEVEL]:
            yield
            return

        # Get the qualified name of the function in which the context
        # manager is entered.
        qualname = "no_qualname"
        if hasattr(sys, "_getframe"):
            qualname = sys._getframe(2).f_code.co_qualname

        label = "." + label.replace(" ", "_")
        name = "<range " + qualname + label + ">"

        timestamp = time.time()
        host_time = -time.perf_counter()
        try:
            yield
        finally:
            host_time += time.perf_counter()
            self.eventlog.append((timestamp, name, host_time, threading.get_ident()))
