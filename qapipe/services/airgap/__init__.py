"""airgap 部署 / 销毁流水线

流水线类位于 setup / destroy 子模块，defaults 中为流水线默认值。
"""
