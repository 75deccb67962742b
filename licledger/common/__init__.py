# Common utilities
from licledger.common.crypto import CryptoUtils as CryptoUtils
from licledger.common.logging_utils import setup_logger as setup_logger
from licledger.common.mixins import Configurable as Configurable

__all__ = ["Configurable", "CryptoUtils", "setup_logger"]
