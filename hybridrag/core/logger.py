import sys
from typing import List, Optional

from loguru import logger

from hybridrag.core.config import settings

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <7}</level> | "
    "<cyan>{module}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <7} | {module}:{function}:{line} - {message}"


# ========================================
# Loguru 日志配置
# ========================================
def setup_logger(level: Optional[str] = None, log_file: Optional[str] = None) -> List[int]:
    """
    配置 loguru 日志系统

    控制台输出写到 stderr，stdout 留给命令行结果；
    RAG_LOG_VERBOSE 打开时至少输出 DEBUG 级别的流水线细节

    Args:
        level: 日志级别（默认取 LOG_LEVEL）
        log_file: 日志文件路径（默认取 LOG_FILE，为空时不写文件）

    Returns:
        新增的 handler id 列表
    """
    if level is None:
        level = "DEBUG" if settings.RAG_LOG_VERBOSE else settings.LOG_LEVEL
    log_file = log_file or settings.LOG_FILE

    logger.remove()
    handler_ids = [
        logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level, colorize=True)
    ]

    if log_file:
        handler_ids.append(
            logger.add(
                log_file,
                rotation="50 MB",
                retention=5,  # 保留最近 5 个文件
                compression="gz",
                format=FILE_FORMAT,
                level=level,
                enqueue=True,
            )
        )

    logger.debug(f"日志系统初始化完成: level={level}, file={log_file or '-'}")
    return handler_ids
