"""gitcache - git 归档缓存代理

对上游 git 仓库维护本地 bare 镜像，按 (commit, 子目录) 输出确定性的
tar / tgz 归档。
"""

__version__ = "0.3.0"
