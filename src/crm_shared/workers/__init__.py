from crm_shared.workers.stream_consumer import MessageHandler, StreamConsumerWorker

__all__ = ["MessageHandler", "StreamConsumerWorker"]
