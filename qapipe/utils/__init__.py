"""通用工具: 日志、子进程、YAML 读写"""
