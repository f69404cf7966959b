"""packyard - 依赖包获取与安装核心

从远程制品仓库、本地路径、Git 仓库三类来源枚举、拉取、缓存并安装包，
并将来源身份序列化为锁文件文本。
"""

__version__ = "0.4.0"
