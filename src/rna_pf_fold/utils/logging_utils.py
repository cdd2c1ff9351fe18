import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

# Default log directory
DEFAULT_LOG_DIR = Path("var/log")

# Loggers that carry the partition-function progress/diagnostic messages.
ENGINE_LOGGERS = (
    "rna_pf_fold.folding.pf_recurrences",
    "rna_pf_fold.folding.circular",
    "rna_pf_fold.folding.pair_probs",
    "rna_pf_fold.folding.partition",
)


def get_log_file_path(
        module_name: str,
        log_dir: Optional[Path] = None,
        include_timestamp: bool = True
) -> Path:
    """
    Generates a standardized file path for a log file.

    The module name is made filesystem-safe and, by default, a timestamp is
    appended so repeated runs never overwrite each other. The target
    directory is created if needed.

    Parameters
    ----------
    module_name : str
        The name of the module or logger (e.g., "rna_pf_fold.folding").
    log_dir : Optional[Path], optional
        The directory where the log file will be saved. Defaults to `DEFAULT_LOG_DIR`.
    include_timestamp : bool, optional
        If True, a timestamp is added to the filename, by default True.

    Returns
    -------
    Path
        The full path of the log file.
    """
    if log_dir is None:
        log_dir = DEFAULT_LOG_DIR

    log_dir.mkdir(parents=True, exist_ok=True)
    safe_name = module_name.replace(".", "_")

    if include_timestamp:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filename = f"{safe_name}_{timestamp}.log"
    else:
        filename = f"{safe_name}.log"

    return log_dir / filename


def setup_logger(
    name: str,
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    log_dir: Optional[Path] = None,
    enable_file_logging: bool = True,
    console_level: Optional[int] = None,
    file_level: Optional[int] = None,
) -> logging.Logger:
    """
    Configures and returns a logger with console and optional file handlers.

    Existing handlers are cleared first so repeated CLI invocations in one
    interpreter never duplicate messages.

    Parameters
    ----------
    name : str
        The name of the logger, typically `__name__`.
    level : int, optional
        The base logging level for the logger and its handlers, by default `logging.INFO`.
    log_file : Optional[str], optional
        A specific path for the log file. Overrides automatic path generation.
    log_dir : Optional[Path], optional
        The directory to store the log file if `log_file` is not provided.
    enable_file_logging : bool, optional
        If True and `log_file` is not given, a timestamped log file is created.
    console_level : Optional[int], optional
        Override for the console handler level.
    file_level : Optional[int], optional
        Override for the file handler level.

    Returns
    -------
    logging.Logger
        The configured logger instance.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                                  datefmt='%Y-%m-%d %H:%M:%S')

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(console_level if console_level is not None else level)
    logger.addHandler(console_handler)

    file_handler = None
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, mode='a')
    elif enable_file_logging:
        log_path = get_log_file_path(name, log_dir=log_dir, include_timestamp=True)
        file_handler = logging.FileHandler(log_path, mode='a')
        logger.info(f"Logging to file: {log_path}")

    if file_handler:
        file_handler.setFormatter(formatter)
        file_handler.setLevel(file_level if file_level is not None else level)
        logger.addHandler(file_handler)

    return logger

