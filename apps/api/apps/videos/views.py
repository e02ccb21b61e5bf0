"""
Video API endpoints.
"""
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.authz.permissions import IsPortalSession
from apps.integrity import selectors, services

from .serializers import PlaybackSerializer, VideoSerializer


class VideoViewSet(viewsets.ViewSet):
    """
    ViewSet for videos. Uploads live under /api/v1/patients/{id}/videos/.

    Endpoints:
    - GET /api/v1/videos/{id}/ - Video detail
    - DELETE /api/v1/videos/{id}/ - Release media and delete the video
    - GET /api/v1/videos/{id}/play/ - Fresh playback URL (410 once released)
    """
    permission_classes = [IsPortalSession]

    def retrieve(self, request, pk=None):
        video = selectors.get_video(request.user, pk)
        return Response(VideoSerializer(video).data)

    def destroy(self, request, pk=None):
        services.delete_video(request.user, pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['get'])
    def play(self, request, pk=None):
        url = selectors.video_playback_url(request.user, pk)
        return Response(PlaybackSerializer({'url': url}).data)
