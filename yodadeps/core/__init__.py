"""核心层: 数据模型、依赖解析器与协作者"""
