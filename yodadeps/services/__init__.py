"""服务层: 组装核心组件，供 CLI 调用"""
