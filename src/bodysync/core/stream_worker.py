# Copyright (c) Realtime Pose Prediction System
# All rights reserved.

"""单写者工作线程：把多个生产者线程的数据项串行推入多路复用器"""

import logging
import queue
import threading
from typing import Any, Dict, Optional

from .multiplexer import StreamMultiplexer

logger = logging.getLogger(__name__)

_STOP = object()


class StreamWorker:
    """
    多路复用器的单写者

    生产者在任意线程调用post()，数据项进入线程安全队列；唯一的消费者线程
    按到达顺序调用multiplexer.push()，保证同一个多路复用器不会被并发写入。
    未调用start()时，可以用process_pending()在当前线程同步处理队列。

    单个数据项处理失败（非法流编号、打包函数异常等）时记录错误并继续处理后续数据项，失败次数和最后一个
    异常保存在failed_items和last_error中。

    Args:
        multiplexer: 目标多路复用器
        max_queue_size: 队列容量，0表示不限
    """

    def __init__(self, multiplexer: StreamMultiplexer, max_queue_size: int = 0):
        self.multiplexer = multiplexer
        self._queue: "queue.Queue[Any]" = queue.Queue(maxsize=max_queue_size)
        self._thread: Optional[threading.Thread] = None
        self._post_lock = threading.Lock()

        self.posted_items = 0
        self.processed_items = 0
        self.failed_items = 0
        self.last_error: Optional[BaseException] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def post(self, stream_id: int, item: Any, timeout: Optional[float] = None) -> None:
        """提交一个数据项（可从任意线程调用）"""
        self._queue.put((stream_id, item), timeout=timeout)
        with self._post_lock:
            self.posted_items += 1

    def start(self) -> None:
        """启动消费者线程"""
        if self.is_running:
            raise RuntimeError("工作线程已在运行")
        self._thread = threading.Thread(target=self._run, name="stream-worker", daemon=True)
        self._thread.start()
        logger.info("多路复用工作线程已启动")

    def stop(self, timeout: Optional[float] = None) -> None:
        """处理完已提交的数据项后停止消费者线程"""
        if self._thread is None:
            return
        self._queue.put(_STOP)
        self._thread.join(timeout)
        if self._thread.is_alive():
            logger.warning(f"工作线程在{timeout}s内未退出")
            return
        self._thread = None
        logger.info(
            f"多路复用工作线程已停止 - 已处理: {self.processed_items}, 失败: {self.failed_items}"
        )

    def process_pending(self) -> int:
        """在当前线程同步处理队列中已有的数据项

        Returns:
            本次处理的数据项数
        """
        if self.is_running:
            raise RuntimeError("工作线程运行中，不能同步处理队列")

        count = 0
        while True:
            try:
                entry = self._queue.get_nowait()
            except queue.Empty:
                return count
            if entry is not _STOP:
                self._handle(*entry)
                count += 1

    def _run(self) -> None:
        while True:
            entry = self._queue.get()
            if entry is _STOP:
                return
            self._handle(*entry)

    def _handle(self, stream_id: int, item: Any) -> None:
        try:
            self.multiplexer.push(stream_id, item)
        except Exception as e:
            self.failed_items += 1
            self.last_error = e
            logger.exception(f"流{stream_id}数据项处理失败，已跳过")
        else:
            self.processed_items += 1

    def get_statistics(self) -> Dict[str, Any]:
        return {
            "posted_items": self.posted_items,
            "processed_items": self.processed_items,
            "failed_items": self.failed_items,
            "pending_items": self._queue.qsize(),
            "is_running": self.is_running,
        }
