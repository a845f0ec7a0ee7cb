#!/usr/bin/env python3
"""bootstrap the app"""

import logging
import logging.handlers
import pathlib
import sys

LOGFORMAT = (
    "%(asctime)s %(levelname)s %(process)d %(threadName)s "
    + "%(module)s:%(funcName)s:%(lineno)d %(message)s"
)


def setuplogging(
    logdir: pathlib.Path | str | None = None,
    loglevel: str = "INFO",
    logname: str = "mprisqueeze.log",
    rotate: bool = False,
) -> pathlib.Path | None:
    """configure logging, to stderr and optionally to a rotating file"""
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    logfile = None

    if logdir:
        logpath = pathlib.Path(logdir)
        logpath.mkdir(parents=True, exist_ok=True)
        logfile = logpath.joinpath(logname)

        besuretorotate = bool(logfile.exists() and rotate)
        logfhandler = logging.handlers.RotatingFileHandler(
            filename=logfile, backupCount=10, encoding="utf-8"
        )
        if besuretorotate:
            try:
                logfhandler.doRollover()
            except OSError as error:
                logging.warning("Could not rotate log file: %s", error)
        handlers.append(logfhandler)

    logging.basicConfig(
        format=LOGFORMAT,
        datefmt="%Y-%m-%dT%H:%M:%S%z",
        handlers=handlers,
        level=loglevel.upper(),
        force=True,
    )
    logging.captureWarnings(True)
    return logfile
