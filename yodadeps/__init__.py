"""yodadeps - yoda 构建系统的第三方依赖解析与外部工程引导层"""

__version__ = "0.1.0"
