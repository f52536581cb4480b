"""qapipe: Rancher QA 基础设施流水线工具集"""

__version__ = "0.1.0"
