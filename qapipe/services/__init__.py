"""服务层: 工具调用、产物处理、airgap 流水线"""
