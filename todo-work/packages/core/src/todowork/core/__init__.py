"""todowork Core -- 领域模型、异常体系、协作方接口与本地后端"""
