"""Docker 相关服务: 测试容器生命周期与 airgap 资源管理"""
