"""
违规证据台账

证据只追加不修改：纠正证据的方式是再追加一条。
文件本身存放在外部对象存储，这里只记录其URL。
"""

import os
from urllib.parse import urlparse

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import URLValidator

from common.exceptions import BusinessValidationError
from .models import ViolationEvidence

IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.gif', '.webp', '.bmp'}
VIDEO_EXTENSIONS = {'.mp4', '.mov', '.avi', '.mkv', '.webm', '.flv', '.wmv'}
MAX_URL_LENGTH = 500
UPLOADER_ROLES = ('provider', 'customer')

_url_validator = URLValidator(schemes=['http', 'https'])


def guess_media_kind(url: str):
    """根据文件扩展名推断媒体类型，无法识别时返回None"""
    ext = os.path.splitext(urlparse(url).path)[1].lower()
    if ext in IMAGE_EXTENSIONS:
        return 'image'
    if ext in VIDEO_EXTENSIONS:
        return 'video'
    return None


class EvidenceLedger:
    """违规申报的证据台账（仅追加、列表）"""

    @staticmethod
    def validate_url(url) -> str:
        url = str(url or '').strip()
        if not url:
            raise BusinessValidationError('证据地址不能为空')
        if len(url) > MAX_URL_LENGTH:
            raise BusinessValidationError(f'证据地址长度不能超过{MAX_URL_LENGTH}个字符')
        try:
            _url_validator(url)
        except DjangoValidationError:
            raise BusinessValidationError(f'证据地址格式不正确: {url}')
        return url

    @staticmethod
    def append(violation, url: str, uploaded_by: str, media_kind=None) -> ViolationEvidence:
        if uploaded_by not in UPLOADER_ROLES:
            raise BusinessValidationError(f'无效的上传方: {uploaded_by}')
        url = EvidenceLedger.validate_url(url)
        if media_kind in ('', None):
            media_kind = guess_media_kind(url)
        elif media_kind not in ('image', 'video'):
            raise BusinessValidationError(f'无效的媒体类型: {media_kind}')
        return ViolationEvidence.objects.create(
            violation=violation,
            url=url,
            uploaded_by=uploaded_by,
            media_kind=media_kind,
        )

    @staticmethod
    def append_many(violation, urls, uploaded_by: str):
        """批量追加，urls 中的元素可以是字符串或 {'url', 'media_kind'} 字典"""
        created = []
        for item in urls or []:
            if isinstance(item, dict):
                created.append(EvidenceLedger.append(
                    violation, item.get('url'), uploaded_by, item.get('media_kind')
                ))
            else:
                created.append(EvidenceLedger.append(violation, item, uploaded_by))
        return created

    @staticmethod
    def list_for(violation):
        return ViolationEvidence.objects.filter(violation=violation).order_by('uploaded_at', 'id')
