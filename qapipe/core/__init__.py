"""核心模型、配置、命名与运行时抽象"""
