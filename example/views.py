import time

from django.http import HttpResponse, JsonResponse

from chrono.middleware.django_timer import record_error

SLOW_SECONDS = 0.6
VERY_SLOW_SECONDS = 2.1


def fast(request):
    return JsonResponse({"message": "fast response"})


def slow(request):
    time.sleep(SLOW_SECONDS)
    return JsonResponse({"message": "slow response"})


def very_slow(request):
    time.sleep(VERY_SLOW_SECONDS)
    return JsonResponse({"message": "very slow response"})


def health(request):
    return HttpResponse("OK")


def teapot(request):
    record_error(request, "brewing refused")
    return JsonResponse({"detail": "I'm a teapot"}, status=418)


def boom(request):
    raise RuntimeError("boom")
